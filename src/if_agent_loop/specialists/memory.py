from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from if_agent_loop.agent import ToolDispatchAgent
from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.provider import LanguageModel
from if_agent_loop.specialists.common import to_payload
from if_agent_loop.system_prompt import MEMORY_AGENT_PROMPT
from if_agent_loop.tool import FunctionTool, Tool


@dataclass
class MemoryEntry:
    id: str
    type: str
    content: str
    importance: int
    timestamp: float
    metadata: dict[str, Any] = field(default_factory=dict)


class MemoryBook:
    def __init__(self, max_memories: int = 100):
        self._max_memories = max_memories
        self._memories: list[MemoryEntry] = []
        self._counter = 0

    def all(self) -> list[MemoryEntry]:
        return list(self._memories)

    def add(self, type: str, content: str, importance: int, metadata: dict[str, Any] | None = None) -> MemoryEntry:
        self._counter += 1
        entry = MemoryEntry(
            id=f"mem_{self._counter}",
            type=type,
            content=content,
            importance=importance,
            timestamp=time.time(),
            metadata=dict(metadata or {}),
        )
        self._memories.append(entry)
        logger.info(f"Added memory: {type} - {content[:50]}")

        if len(self._memories) > self._max_memories:
            # Stable sort keeps the newer of equally important memories.
            self._memories.sort(key=lambda m: m.importance)
            self._memories = self._memories[len(self._memories) - self._max_memories:]

        return entry

    def retrieve(
        self,
        type: str | None = None,
        search_term: str | None = None,
        min_importance: int | None = None,
        limit: int | None = None,
    ) -> list[MemoryEntry]:
        results = list(self._memories)
        if type:
            results = [m for m in results if m.type == type]
        if search_term:
            needle = search_term.lower()
            results = [m for m in results if needle in m.content.lower()]
        if min_importance:
            results = [m for m in results if m.importance >= min_importance]
        results.sort(key=lambda m: m.importance, reverse=True)
        if limit and limit > 0:
            results = results[:limit]
        return results

    def update(
        self,
        id: str,
        content: str | None = None,
        importance: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryEntry | None:
        entry = next((m for m in self._memories if m.id == id), None)
        if entry is None:
            logger.warning(f"Memory with ID {id} not found")
            return None
        if content is not None:
            entry.content = content
        if importance is not None:
            entry.importance = importance
        if metadata is not None:
            entry.metadata = {**entry.metadata, **metadata}
        entry.timestamp = time.time()
        logger.info(f"Updated memory: {entry.id} - {entry.type}")
        return entry

    def summary_prompt(self, type: str | None = None, min_importance: int | None = None) -> str | None:
        memories = self.retrieve(type=type, min_importance=min_importance)
        if not memories:
            return None

        grouped: dict[str, list[MemoryEntry]] = {}
        for memory in memories:
            grouped.setdefault(memory.type, []).append(memory)

        sections = "\n\n".join(
            f"## {group.upper()}\n"
            + "\n".join(f"- {m.content} (Importance: {m.importance})" for m in entries)
            for group, entries in grouped.items()
        )
        return (
            "Please summarize the following memories, organized by type:\n\n"
            f"{sections}\n\n"
            "Provide a concise summary that highlights the most important information."
        )


class AddMemoryParams(BaseModel):
    type: str = Field(description="The type of memory (e.g. location, item, character, puzzle)")
    content: str = Field(description="The content of the memory")
    importance: int = Field(ge=1, le=10, description="The importance of the memory (1-10)")
    metadata: dict[str, Any] | None = Field(default=None, description="Additional metadata for the memory")


class RetrieveMemoriesParams(BaseModel):
    type: str | None = Field(default=None, description="Filter by memory type")
    search_term: str | None = Field(default=None, description="Search term to find in memory content")
    min_importance: int | None = Field(default=None, ge=1, le=10, description="Minimum importance level")
    limit: int | None = Field(default=None, description="Maximum number of memories to retrieve")


class UpdateMemoryParams(BaseModel):
    id: str = Field(description="The ID of the memory to update")
    content: str | None = Field(default=None, description="New content for the memory")
    importance: int | None = Field(default=None, ge=1, le=10, description="New importance level")
    metadata: dict[str, Any] | None = Field(default=None, description="Metadata to merge into the memory")


class SummarizeMemoriesParams(BaseModel):
    type: str | None = Field(default=None, description="Filter by memory type")
    min_importance: int | None = Field(default=None, ge=1, le=10, description="Minimum importance level")


class MemoryAgent:
    """Memory specialist: a dispatch agent over a MemoryBook."""

    def __init__(
        self,
        model: LanguageModel,
        *,
        max_memories: int = 100,
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = MEMORY_AGENT_PROMPT,
    ) -> None:
        self.book = MemoryBook(max_memories)
        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name="Memory Agent",
                system_prompt=system_prompt,
                tools=self._build_tools(),
                dialogue_limit=dialogue_limit,
                events=events or NullEventEmitter(),
            )
        )

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def summarize(self, type: str | None = None, min_importance: int | None = None) -> str:
        prompt = self.book.summary_prompt(type=type, min_importance=min_importance)
        if prompt is None:
            return "No memories found matching the criteria."
        return await self.agent.analyze(prompt)

    def _build_tools(self) -> list[Tool]:
        async def add_memory(p: AddMemoryParams):
            return to_payload(self.book.add(p.type, p.content, p.importance, p.metadata), "")

        async def retrieve_memories(p: RetrieveMemoriesParams):
            return to_payload(self.book.retrieve(p.type, p.search_term, p.min_importance, p.limit), "")

        async def update_memory(p: UpdateMemoryParams):
            return to_payload(
                self.book.update(p.id, p.content, p.importance, p.metadata),
                f"Memory with ID {p.id} not found",
            )

        async def summarize_memories(p: SummarizeMemoriesParams):
            return await self.summarize(p.type, p.min_importance)

        return [
            FunctionTool("add_memory", "Add a new memory to the memory store", AddMemoryParams, add_memory),
            FunctionTool(
                "retrieve_memories",
                "Retrieve memories by type, content search or importance",
                RetrieveMemoriesParams,
                retrieve_memories,
            ),
            FunctionTool("update_memory", "Update an existing memory", UpdateMemoryParams, update_memory),
            FunctionTool(
                "summarize_memories",
                "Summarize memories by type or importance",
                SummarizeMemoriesParams,
                summarize_memories,
            ),
        ]
