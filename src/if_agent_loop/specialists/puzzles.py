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
from if_agent_loop.system_prompt import PUZZLE_AGENT_PROMPT
from if_agent_loop.tool import FunctionTool, Tool

PuzzleStatus = Literal["unsolved", "in_progress", "solved"]


@dataclass
class Attempt:
    attempt: str
    result: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class Puzzle:
    id: str
    description: str
    status: PuzzleStatus = "unsolved"
    clues: list[str] = field(default_factory=list)
    attempts: list[Attempt] = field(default_factory=list)
    solution: str | None = None
    created_at: float = field(default_factory=time.time)
    solved_at: float | None = None


class PuzzleBook:
    def __init__(self, max_puzzles: int = 50):
        self._max_puzzles = max_puzzles
        # Insertion ordered, oldest first.
        self._puzzles: dict[str, Puzzle] = {}
        self._counter = 0

    def all(self) -> list[Puzzle]:
        return list(self._puzzles.values())

    def get(self, id: str) -> Puzzle | None:
        return self._puzzles.get(id)

    def add(self, description: str, initial_clues: list[str] | None = None) -> Puzzle:
        self._counter += 1
        puzzle = Puzzle(id=f"puzzle_{self._counter}", description=description, clues=list(initial_clues or []))
        self._puzzles[puzzle.id] = puzzle
        logger.info(f"Added puzzle: {description}")

        while len(self._puzzles) > self._max_puzzles:
            oldest_id = next(iter(self._puzzles))
            removed = self._puzzles.pop(oldest_id)
            logger.info(f"Removed old puzzle: {removed.description}")

        return puzzle

    def add_clue(self, id: str, clue: str) -> Puzzle | None:
        puzzle = self._puzzles.get(id)
        if puzzle is None:
            logger.warning(f"Puzzle with ID {id} not found")
            return None
        if clue not in puzzle.clues:
            puzzle.clues.append(clue)
            if puzzle.status == "unsolved" and len(puzzle.clues) == 1:
                puzzle.status = "in_progress"
        return puzzle

    def record_attempt(self, id: str, attempt: str, result: str) -> Puzzle | None:
        puzzle = self._puzzles.get(id)
        if puzzle is None:
            logger.warning(f"Puzzle with ID {id} not found")
            return None
        puzzle.attempts.append(Attempt(attempt=attempt, result=result))
        if puzzle.status == "unsolved":
            puzzle.status = "in_progress"
        logger.info(f"Recorded attempt for puzzle {id}: {attempt}")
        return puzzle

    def solve(self, id: str, solution: str) -> Puzzle | None:
        puzzle = self._puzzles.get(id)
        if puzzle is None:
            logger.warning(f"Puzzle with ID {id} not found")
            return None
        puzzle.status = "solved"
        puzzle.solution = solution
        puzzle.solved_at = time.time()
        logger.info(f"Marked puzzle {id} as solved: {solution}")
        return puzzle

    def filter(self, status: PuzzleStatus | None = None) -> list[Puzzle]:
        puzzles = [p for p in reversed(self._puzzles.values()) if not status or p.status == status]
        return puzzles

    @staticmethod
    def analysis_prompt(puzzle: Puzzle) -> str:
        clues = "\n".join(f"{i}. {clue}" for i, clue in enumerate(puzzle.clues, start=1))
        attempts = "\n\n".join(f'- Attempt: "{a.attempt}"\n  Result: "{a.result}"' for a in puzzle.attempts)
        return (
            "Please analyze this puzzle and suggest possible solutions:\n\n"
            f"## Puzzle Description\n{puzzle.description}\n\n"
            f"## Clues ({len(puzzle.clues)})\n{clues}\n\n"
            f"## Previous Attempts ({len(puzzle.attempts)})\n{attempts}\n\n"
            "Based on the description, clues, and previous attempts, please:\n"
            "1. Analyze what the puzzle is asking for\n"
            "2. Identify patterns or connections between the clues\n"
            "3. Suggest 2-3 specific commands or solutions to try next\n"
            "4. Explain your reasoning for each suggestion"
        )


class AddPuzzleParams(BaseModel):
    description: str = Field(description="Description of the puzzle")
    initial_clues: list[str] | None = Field(default=None, description="Clues already known")


class AddClueParams(BaseModel):
    puzzle_id: str = Field(description="ID of the puzzle")
    clue: str = Field(description="The clue to add")


class RecordAttemptParams(BaseModel):
    puzzle_id: str = Field(description="ID of the puzzle")
    attempt: str = Field(description="What was tried")
    result: str = Field(description="What happened")


class SolvePuzzleParams(BaseModel):
    puzzle_id: str = Field(description="ID of the puzzle")
    solution: str = Field(description="The solution that worked")


class PuzzleIdParams(BaseModel):
    puzzle_id: str = Field(description="ID of the puzzle")


class GetPuzzlesParams(BaseModel):
    status: PuzzleStatus | None = Field(default=None, description="Filter by status")


class PuzzleAgent:
    """Puzzle specialist: a dispatch agent over a PuzzleBook."""

    def __init__(
        self,
        model: LanguageModel,
        *,
        max_puzzles: int = 50,
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = PUZZLE_AGENT_PROMPT,
    ) -> None:
        self.book = PuzzleBook(max_puzzles)
        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name="Puzzle Solver",
                system_prompt=system_prompt,
                tools=self._build_tools(),
                dialogue_limit=dialogue_limit,
                events=events or NullEventEmitter(),
            )
        )

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def analyze(self, puzzle_id: str) -> str:
        puzzle = self.book.get(puzzle_id)
        if puzzle is None:
            return f"Puzzle with ID {puzzle_id} not found"
        if puzzle.status == "solved":
            return f"This puzzle is already solved. Solution: {puzzle.solution}"
        return await self.agent.analyze(self.book.analysis_prompt(puzzle))

    def _build_tools(self) -> list[Tool]:
        async def add_puzzle(p: AddPuzzleParams):
            return to_payload(self.book.add(p.description, p.initial_clues), "")

        async def add_clue(p: AddClueParams):
            return to_payload(self.book.add_clue(p.puzzle_id, p.clue), f"Puzzle with ID {p.puzzle_id} not found")

        async def record_attempt(p: RecordAttemptParams):
            return to_payload(
                self.book.record_attempt(p.puzzle_id, p.attempt, p.result),
                f"Puzzle with ID {p.puzzle_id} not found",
            )

        async def solve_puzzle(p: SolvePuzzleParams):
            return to_payload(self.book.solve(p.puzzle_id, p.solution), f"Puzzle with ID {p.puzzle_id} not found")

        async def analyze_puzzle(p: PuzzleIdParams):
            return await self.analyze(p.puzzle_id)

        async def get_puzzles(p: GetPuzzlesParams):
            return to_payload(self.book.filter(p.status), "")

        return [
            FunctionTool("add_puzzle", "Record a new puzzle", AddPuzzleParams, add_puzzle),
            FunctionTool("add_clue", "Add a clue to an existing puzzle", AddClueParams, add_clue),
            FunctionTool("record_attempt", "Record an attempt to solve a puzzle", RecordAttemptParams, record_attempt),
            FunctionTool("solve_puzzle", "Mark a puzzle as solved", SolvePuzzleParams, solve_puzzle),
            FunctionTool("analyze_puzzle", "Analyze a puzzle and suggest solutions", PuzzleIdParams, analyze_puzzle),
            FunctionTool("get_puzzles", "List puzzles, newest first", GetPuzzlesParams, get_puzzles),
        ]
