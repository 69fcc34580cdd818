"""Hierarchical orchestrator: a dispatch agent whose tools delegate to specialist agents.

Every orchestrator tool turns its validated parameters into a natural-language
instruction and forwards it to one child's ``process_message``. The child's
reply is the tool result.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

from if_agent_loop.agent import ToolDispatchAgent
from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.game_client import GameSessionClient
from if_agent_loop.provider import LanguageModel
from if_agent_loop.specialists.game import NOT_STARTED, GameAgent, GameState, SendGameCommandParams
from if_agent_loop.specialists.goals import GoalAgent
from if_agent_loop.specialists.memory import AddMemoryParams, MemoryAgent
from if_agent_loop.specialists.puzzles import AddClueParams, AddPuzzleParams, PuzzleAgent, PuzzleIdParams
from if_agent_loop.specialists.world_map import MapAgent
from if_agent_loop.system_prompt import ORCHESTRATOR_PROMPT
from if_agent_loop.tool import FunctionTool, Tool
from if_agent_loop.usage import ModelPricing, ModelUsage


def _instruction(*lines: str | None) -> str:
    return "\n".join(line for line in lines if line)


class RetrieveParams(BaseModel):
    type: str | None = Field(default=None, description="Filter by memory type")
    search_term: str | None = Field(default=None, description="Search term to find in memory content")
    min_importance: int | None = Field(default=None, ge=1, le=10, description="Minimum importance level")


class SummarizeParams(BaseModel):
    type: str | None = Field(default=None, description="Filter by memory type")


class AddGoalParams(BaseModel):
    description: str = Field(description="Description of the goal")
    priority: int = Field(ge=1, le=10, description="Priority of the goal (1-10)")
    parent_id: str | None = Field(default=None, description="ID of the parent goal, if this is a subgoal")


class CompleteGoalParams(BaseModel):
    id: str = Field(description="ID of the goal to complete")
    notes: str | None = Field(default=None, description="Notes about the completion")


class GetGoalsParams(BaseModel):
    status: Literal["active", "completed", "abandoned"] | None = Field(default=None, description="Filter by status")


class NoParams(BaseModel):
    pass


class AddLocationParams(BaseModel):
    name: str = Field(description="Name of the location")
    description: str = Field(description="Description of the location")


class AddExitParams(BaseModel):
    location_id: str = Field(description="ID of the location")
    direction: str = Field(description="Direction of the exit (e.g. north, south, east, west)")
    destination_id: str | None = Field(default=None, description="ID of the destination location, if known")


@dataclass(frozen=True)
class ToolGroup:
    enabled: Callable[[AgentOrchestrator], bool]
    build: Callable[[AgentOrchestrator], list[Tool]]


def _forward(
    name: str,
    description: str,
    parameters: type[BaseModel],
    target: Callable[[str], Awaitable[str]],
    render: Callable[[BaseModel], str],
) -> Tool:
    async def handler(params: BaseModel) -> str:
        return await target(render(params))

    return FunctionTool(name, description, parameters, handler)


def _game_tools(o: AgentOrchestrator) -> list[Tool]:
    return [
        _forward(
            "send_game_command",
            "Send a command to the interactive fiction game",
            SendGameCommandParams,
            o.game.process_message,
            lambda p: p.command,
        )
    ]


def _memory_tools(o: AgentOrchestrator) -> list[Tool]:
    target = o.memory.process_message
    return [
        _forward(
            "add_memory",
            "Add a new memory",
            AddMemoryParams,
            target,
            lambda p: _instruction(
                "Please add a new memory with the following details:",
                f"Type: {p.type}",
                f"Content: {p.content}",
                f"Importance: {p.importance}",
                f"Metadata: {json.dumps(p.metadata)}" if p.metadata else None,
            ),
        ),
        _forward(
            "retrieve_memories",
            "Retrieve memories based on type or content",
            RetrieveParams,
            target,
            lambda p: _instruction(
                "Please retrieve memories with the following criteria:",
                f"Type: {p.type}" if p.type else None,
                f"Search Term: {p.search_term}" if p.search_term else None,
                f"Minimum Importance: {p.min_importance}" if p.min_importance else None,
            ),
        ),
        _forward(
            "summarize_memories",
            "Generate a summary of memories by type",
            SummarizeParams,
            target,
            lambda p: f'Please summarize memories{f" of type {json.dumps(p.type)}" if p.type else ""}.',
        ),
    ]


def _goal_tools(o: AgentOrchestrator) -> list[Tool]:
    target = o.goals.process_message
    return [
        _forward(
            "add_goal",
            "Add a new goal or objective",
            AddGoalParams,
            target,
            lambda p: _instruction(
                "Please add a new goal with the following details:",
                f"Description: {p.description}",
                f"Priority: {p.priority}",
                f"Parent ID: {p.parent_id}" if p.parent_id else None,
            ),
        ),
        _forward(
            "complete_goal",
            "Mark a goal as completed",
            CompleteGoalParams,
            target,
            lambda p: f"Please mark goal {p.id} as completed{f' with notes: {p.notes}' if p.notes else ''}.",
        ),
        _forward(
            "get_goals",
            "Get goals filtered by status",
            GetGoalsParams,
            target,
            lambda p: f'Please retrieve goals{f" with status {json.dumps(p.status)}" if p.status else ""}.',
        ),
        _forward(
            "analyze_goals",
            "Analyze goals and provide insights",
            NoParams,
            target,
            lambda p: "Please analyze the current goals and provide strategic insights.",
        ),
    ]


def _puzzle_tools(o: AgentOrchestrator) -> list[Tool]:
    target = o.puzzles.process_message
    return [
        _forward(
            "add_puzzle",
            "Add a new puzzle to track",
            AddPuzzleParams,
            target,
            lambda p: _instruction(
                "Please add a new puzzle with the following details:",
                f"Description: {p.description}",
                f"Initial Clues: {json.dumps(p.initial_clues)}" if p.initial_clues else None,
            ),
        ),
        _forward(
            "add_clue",
            "Add a clue to an existing puzzle",
            AddClueParams,
            target,
            lambda p: f"Please add the following clue to puzzle {p.puzzle_id}:\n{p.clue}",
        ),
        _forward(
            "analyze_puzzle",
            "Analyze a puzzle and suggest possible solutions",
            PuzzleIdParams,
            target,
            lambda p: f"Please analyze puzzle {p.puzzle_id} and suggest possible solutions.",
        ),
    ]


def _map_tools(o: AgentOrchestrator) -> list[Tool]:
    target = o.map.process_message
    return [
        _forward(
            "add_location",
            "Add a new location to the map",
            AddLocationParams,
            target,
            lambda p: _instruction(
                "Please add a new location with the following details:",
                f"Name: {p.name}",
                f"Description: {p.description}",
            ),
        ),
        _forward(
            "add_exit",
            "Add an exit to a location",
            AddExitParams,
            target,
            lambda p: (
                f"Please add an exit from location {p.location_id} in direction {p.direction}"
                f"{f' leading to location {p.destination_id}' if p.destination_id else ''}."
            ),
        ),
        _forward(
            "generate_map",
            "Generate a text representation of the map",
            NoParams,
            target,
            lambda p: "Please generate a text representation of the current map.",
        ),
    ]


def _always(_: AgentOrchestrator) -> bool:
    return True


def _has_game(o: AgentOrchestrator) -> bool:
    return o.game is not None


_GROUPS = [
    ToolGroup(enabled=_has_game, build=_game_tools),
    ToolGroup(enabled=_always, build=_memory_tools),
    ToolGroup(enabled=_always, build=_goal_tools),
    ToolGroup(enabled=_always, build=_puzzle_tools),
    ToolGroup(enabled=_always, build=_map_tools),
]


class AgentOrchestrator:
    def __init__(
        self,
        model: LanguageModel,
        *,
        game_client: GameSessionClient | None = None,
        game_path: str = "zork1.z3",
        memory_model: LanguageModel | None = None,
        goal_model: LanguageModel | None = None,
        puzzle_model: LanguageModel | None = None,
        map_model: LanguageModel | None = None,
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = ORCHESTRATOR_PROMPT,
        name: str = "Agent Orchestrator",
    ) -> None:
        events = events or NullEventEmitter()
        self.game: GameAgent | None = None
        if game_client is not None:
            self.game = GameAgent(
                model,
                game_client,
                game_path=game_path,
                dialogue_limit=dialogue_limit,
                events=events,
            )
        self.memory = MemoryAgent(memory_model or model, dialogue_limit=dialogue_limit, events=events)
        self.goals = GoalAgent(goal_model or model, dialogue_limit=dialogue_limit, events=events)
        self.puzzles = PuzzleAgent(puzzle_model or model, dialogue_limit=dialogue_limit, events=events)
        self.map = MapAgent(map_model or model, dialogue_limit=dialogue_limit, events=events)

        tools: list[Tool] = []
        for group in _GROUPS:
            if group.enabled(self):
                tools.extend(group.build(self))

        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name=name,
                system_prompt=system_prompt,
                tools=tools,
                dialogue_limit=dialogue_limit,
                events=events,
            )
        )
        for child in self.children:
            self.agent.add_child(child.agent)

    @property
    def children(self) -> list:
        specialists = [self.memory, self.goals, self.puzzles, self.map]
        return [self.game, *specialists] if self.game is not None else specialists

    @property
    def name(self) -> str:
        return self.agent.name

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def start_game(self) -> str:
        if self.game is None:
            return NOT_STARTED
        intro = await self.game.start_game()
        if not self.game.game_state.started:
            return intro
        return await self.process_message(intro)

    @property
    def game_state(self) -> GameState | None:
        return self.game.game_state if self.game is not None else None

    def usage_by_model(self) -> dict[str, ModelUsage]:
        return self.agent.usage_by_model()

    def total_usage(self) -> ModelUsage:
        return self.agent.total_usage()

    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float:
        return self.agent.total_cost(custom_pricing)
