from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field

from if_agent_loop.agent import ToolDispatchAgent
from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.provider import LanguageModel
from if_agent_loop.specialists.common import to_payload
from if_agent_loop.system_prompt import GOAL_AGENT_PROMPT
from if_agent_loop.tool import FunctionTool, Tool

GoalStatus = Literal["active", "completed", "abandoned"]


@dataclass
class Goal:
    id: str
    description: str
    priority: int
    status: GoalStatus = "active"
    parent_id: str | None = None
    subgoals: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    completed_at: float | None = None


class GoalBoard:
    def __init__(self) -> None:
        self._goals: dict[str, Goal] = {}
        self._counter = 0

    def all(self) -> list[Goal]:
        return list(self._goals.values())

    def get(self, id: str) -> Goal | None:
        return self._goals.get(id)

    def add(self, description: str, priority: int, parent_id: str | None = None) -> Goal:
        self._counter += 1
        goal = Goal(id=f"goal_{self._counter}", description=description, priority=priority, parent_id=parent_id)
        self._goals[goal.id] = goal
        logger.info(f"Added goal: {description}")

        if parent_id:
            parent = self._goals.get(parent_id)
            if parent is not None:
                parent.subgoals.append(goal.id)
                logger.info(f"Added subgoal to parent {parent_id}")
            else:
                logger.warning(f"Parent goal {parent_id} not found")

        return goal

    def set_status(self, id: str, status: GoalStatus, notes: str | None = None) -> Goal | None:
        goal = self._goals.get(id)
        if goal is None:
            logger.warning(f"Goal with ID {id} not found")
            return None
        goal.status = status
        if status == "completed":
            goal.completed_at = time.time()
        if notes:
            goal.notes.append(f"[{status.upper()}] {notes}")
        logger.info(f"Updated goal {id} status to {status}")
        return goal

    def complete(self, id: str, notes: str | None = None) -> Goal | None:
        return self.set_status(id, "completed", notes)

    def abandon(self, id: str, notes: str | None = None) -> Goal | None:
        return self.set_status(id, "abandoned", notes)

    def add_note(self, id: str, note: str) -> Goal | None:
        goal = self._goals.get(id)
        if goal is None:
            logger.warning(f"Goal with ID {id} not found")
            return None
        goal.notes.append(note)
        return goal

    def filter(
        self,
        status: GoalStatus | None = None,
        min_priority: int | None = None,
        parent_id: str | None = None,
    ) -> list[Goal]:
        goals = list(self._goals.values())
        if status:
            goals = [g for g in goals if g.status == status]
        if min_priority:
            goals = [g for g in goals if g.priority >= min_priority]
        if parent_id:
            goals = [g for g in goals if g.parent_id == parent_id]
        goals.sort(key=lambda g: g.priority, reverse=True)
        return goals

    def analysis_prompt(self, status: GoalStatus | None = None) -> str | None:
        goals = self.filter(status=status)
        if not goals:
            return None

        def band(low: int, high: int) -> str:
            return "\n".join(
                f"- [{g.status.upper()}] {g.description}" for g in goals if low <= g.priority <= high
            )

        counts = {s: sum(1 for g in goals if g.status == s) for s in ("active", "completed", "abandoned")}
        return (
            "Please analyze the following goals:\n\n"
            f"## High Priority (8-10)\n{band(8, 10)}\n\n"
            f"## Medium Priority (4-7)\n{band(4, 7)}\n\n"
            f"## Low Priority (1-3)\n{band(1, 3)}\n\n"
            "Status Summary:\n"
            f"- Active: {counts['active']}\n"
            f"- Completed: {counts['completed']}\n"
            f"- Abandoned: {counts['abandoned']}\n\n"
            "Please provide:\n"
            "1. A strategic assessment of the current goals\n"
            "2. Recommendations for which goals to focus on next\n"
            "3. Any patterns or insights from the goal structure"
        )


class AddGoalParams(BaseModel):
    description: str = Field(description="Description of the goal")
    priority: int = Field(ge=1, le=10, description="Priority of the goal (1-10)")
    parent_id: str | None = Field(default=None, description="ID of the parent goal, if this is a subgoal")


class CloseGoalParams(BaseModel):
    id: str = Field(description="ID of the goal")
    notes: str | None = Field(default=None, description="Notes about the outcome")


class AddNoteParams(BaseModel):
    id: str = Field(description="ID of the goal")
    note: str = Field(description="Note to add to the goal")


class GetGoalsParams(BaseModel):
    status: GoalStatus | None = Field(default=None, description="Filter by status")
    min_priority: int | None = Field(default=None, ge=1, le=10, description="Minimum priority level")
    parent_id: str | None = Field(default=None, description="Only subgoals of this goal")


class AnalyzeGoalsParams(BaseModel):
    status: GoalStatus | None = Field(default=None, description="Only analyze goals with this status")


class GoalAgent:
    """Goal specialist: a dispatch agent over a GoalBoard."""

    def __init__(
        self,
        model: LanguageModel,
        *,
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = GOAL_AGENT_PROMPT,
    ) -> None:
        self.board = GoalBoard()
        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name="Goal Agent",
                system_prompt=system_prompt,
                tools=self._build_tools(),
                dialogue_limit=dialogue_limit,
                events=events or NullEventEmitter(),
            )
        )

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def analyze(self, status: GoalStatus | None = None) -> str:
        prompt = self.board.analysis_prompt(status)
        if prompt is None:
            return "No goals found matching the criteria."
        return await self.agent.analyze(prompt)

    def _build_tools(self) -> list[Tool]:
        async def add_goal(p: AddGoalParams):
            return to_payload(self.board.add(p.description, p.priority, p.parent_id), "")

        async def complete_goal(p: CloseGoalParams):
            return to_payload(self.board.complete(p.id, p.notes), f"Goal with ID {p.id} not found")

        async def abandon_goal(p: CloseGoalParams):
            return to_payload(self.board.abandon(p.id, p.notes), f"Goal with ID {p.id} not found")

        async def add_note_to_goal(p: AddNoteParams):
            return to_payload(self.board.add_note(p.id, p.note), f"Goal with ID {p.id} not found")

        async def get_goals(p: GetGoalsParams):
            return to_payload(self.board.filter(p.status, p.min_priority, p.parent_id), "")

        async def analyze_goals(p: AnalyzeGoalsParams):
            return await self.analyze(p.status)

        return [
            FunctionTool("add_goal", "Add a new goal or objective", AddGoalParams, add_goal),
            FunctionTool("complete_goal", "Mark a goal as completed", CloseGoalParams, complete_goal),
            FunctionTool("abandon_goal", "Mark a goal as abandoned", CloseGoalParams, abandon_goal),
            FunctionTool("add_note_to_goal", "Add a note to an existing goal", AddNoteParams, add_note_to_goal),
            FunctionTool("get_goals", "List goals by status, priority or parent", GetGoalsParams, get_goals),
            FunctionTool("analyze_goals", "Analyze goals and suggest what to focus on", AnalyzeGoalsParams, analyze_goals),
        ]
