from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from loguru import logger

from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.dialogue import BoundedDialogue
from if_agent_loop.tool_registry import ToolRegistry
from if_agent_loop.turn_engine import TurnEngine
from if_agent_loop.usage import (
    ModelPricing,
    ModelUsage,
    UsageTracker,
    merge_usage,
    sum_usage,
)


@runtime_checkable
class UsageSource(Protocol):
    def usage_by_model(self) -> dict[str, ModelUsage]: ...
    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float: ...


class ToolDispatchAgent:
    """One decision-maker over a bounded dialogue and a fixed tool set.

    Usage reported by ``usage_by_model`` includes every child registered with
    ``add_child`` and is recomputed on each call.
    """

    def __init__(self, config: AgentConfig):
        self._config = config
        self._name = config.display_name
        self._model = config.model
        self._system_prompt = config.system_prompt
        self._events = config.events
        self._registry = ToolRegistry(config.tools)
        self._dialogue = BoundedDialogue(config.dialogue_limit)
        self._dialogue.system(self._system_prompt)
        self._usage = UsageTracker()
        self._children: list[UsageSource] = []

        self._turn_engine = TurnEngine(
            model=self._model,
            system_prompt=self._system_prompt,
            dialogue=self._dialogue,
            registry=self._registry,
            on_usage=self._usage.track,
            on_tool_started=self._emit_tool_started,
            on_tool_completed=self._emit_tool_completed,
            on_reply=self._emit_reply,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def dialogue(self) -> BoundedDialogue:
        return self._dialogue

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def model_id(self) -> str:
        return self._model.model_id

    def add_child(self, child: UsageSource) -> None:
        self._children.append(child)

    async def process_message(self, message: str) -> str:
        logger.debug(f"[{self._name}] Processing message: {message[:200]}")
        return await self._turn_engine.run(message)

    async def analyze(self, prompt: str) -> str:
        """Free-text generation over the dialogue, bypassing tool dispatch."""
        self._dialogue.user(prompt)
        generation = await self._model.generate_text(self._system_prompt, self._dialogue.messages())
        self._usage.track(self._model.model_id, generation.usage)
        self._dialogue.assistant(generation.text)
        return generation.text

    def own_usage_by_model(self) -> dict[str, ModelUsage]:
        return self._usage.by_model()

    def usage_by_model(self) -> dict[str, ModelUsage]:
        return merge_usage(self._usage.by_model(), *(child.usage_by_model() for child in self._children))

    def total_usage(self) -> ModelUsage:
        return sum_usage(self.usage_by_model().values())

    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float:
        pricing = {**self._config.custom_pricing, **(custom_pricing or {})}
        return self._usage.cost(pricing) + sum(child.total_cost(custom_pricing) for child in self._children)

    def _emit_tool_started(self, tool_call_id: str, tool_name: str) -> None:
        self._events.emit(self._name, "tool.started", {"tool_call_id": tool_call_id, "tool": tool_name})

    def _emit_tool_completed(self, tool_call_id: str, tool_name: str, is_error: bool) -> None:
        event_type = "tool.failed" if is_error else "tool.completed"
        self._events.emit(self._name, event_type, {"tool_call_id": tool_call_id, "tool": tool_name})

    def _emit_reply(self, text: str) -> None:
        self._events.emit(self._name, "agent.reply", {"length": len(text)})
