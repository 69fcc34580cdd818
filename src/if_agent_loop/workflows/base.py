"""Turn-based workflow: one game session driven by a pluggable command strategy.

State machine::

    NOT_STARTED -> RUNNING -> COMPLETED   a termination phrase matched
                           -> TIMED_OUT   iteration budget used up
                           -> FAILED      start failed or the loop raised

``run`` never raises for game or strategy failures. A failed run reports
score 0, moves 0 and ``completed=False`` together with whatever usage the
strategy accumulated before failing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import uuid4

from loguru import logger

from if_agent_loop.dialogue import BoundedDialogue
from if_agent_loop.errors import AgentLoopError
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.game_client import GameSessionClient
from if_agent_loop.game_text import GameProgress, extract_moves, extract_score, is_game_over
from if_agent_loop.usage import ModelPricing, ModelUsage, sum_usage

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_GAME_PATH = "zork1.z3"
DEFAULT_DIALOGUE_LIMIT = 50
SETUP_COMMAND = "verbose"


class WorkflowState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@runtime_checkable
class CommandStrategy(Protocol):
    @property
    def display_name(self) -> str: ...

    @property
    def log_prefix(self) -> str: ...

    @property
    def system_prompt(self) -> str: ...

    async def next_command(self, dialogue: BoundedDialogue) -> str: ...

    def usage_by_model(self) -> dict[str, ModelUsage]: ...

    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float: ...


@dataclass(frozen=True)
class WorkflowConfig:
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    game_path: str = DEFAULT_GAME_PATH
    dialogue_limit: int = DEFAULT_DIALOGUE_LIMIT
    display_name: str | None = None
    custom_pricing: dict[str, ModelPricing] = field(default_factory=dict)

    def describe_overrides(self) -> list[str]:
        parts = []
        if self.max_iterations != DEFAULT_MAX_ITERATIONS:
            parts.append(f"iterations={self.max_iterations}")
        if self.game_path != DEFAULT_GAME_PATH:
            parts.append(f"game={self.game_path}")
        if self.dialogue_limit != DEFAULT_DIALOGUE_LIMIT:
            parts.append(f"dialogueLimit={self.dialogue_limit}")
        return parts


@dataclass(frozen=True)
class TurnRecord:
    turn: int
    command: str
    response: str
    score: int | None
    moves: int | None
    terminated: bool


@dataclass(frozen=True)
class WorkflowOutcome:
    state: WorkflowState
    score: int
    moves: int
    turns: int
    usage_by_model: dict[str, ModelUsage]
    estimated_cost: float
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.state is WorkflowState.COMPLETED

    @property
    def usage(self) -> ModelUsage:
        return sum_usage(self.usage_by_model.values())


class TurnWorkflow:
    def __init__(
        self,
        strategy: CommandStrategy,
        client: GameSessionClient,
        config: WorkflowConfig | None = None,
        *,
        events: EventEmitter | None = None,
        workflow_id: str | None = None,
    ) -> None:
        self._strategy = strategy
        self._client = client
        self._config = config or WorkflowConfig()
        self._events = events or NullEventEmitter()
        self._id = workflow_id or f"{strategy.log_prefix}_{uuid4().hex[:12]}"
        self._log = logger.bind(workflow=self._id)
        self._state = WorkflowState.NOT_STARTED
        self._session_id = ""
        self._dialogue = BoundedDialogue(self._config.dialogue_limit)
        self._dialogue.system(strategy.system_prompt)
        self._progress = GameProgress()
        self._turns: list[TurnRecord] = []

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._strategy.display_name

    @property
    def display_name(self) -> str:
        if self._config.display_name:
            return self._config.display_name
        overrides = self._config.describe_overrides()
        if overrides:
            return f"{self.name} [{', '.join(overrides)}]"
        return self.name

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def dialogue(self) -> BoundedDialogue:
        return self._dialogue

    @property
    def turns(self) -> list[TurnRecord]:
        return list(self._turns)

    async def run(self) -> WorkflowOutcome:
        if self._state is not WorkflowState.NOT_STARTED:
            raise AgentLoopError(f"Workflow {self._id} has already been run")
        self._state = WorkflowState.RUNNING

        try:
            text = await self._start()
            for turn in range(1, self._config.max_iterations + 1):
                self._progress = self._progress.update(text)
                text = await self._play_turn(turn)
                if self._turns[-1].terminated:
                    self._state = WorkflowState.COMPLETED
                    self._log.info("Game ended")
                    break
            else:
                self._state = WorkflowState.TIMED_OUT
                self._log.info(f"Iteration budget of {self._config.max_iterations} used up")

            self._progress = self._progress.update(text)
        except Exception as ex:
            self._state = WorkflowState.FAILED
            self._log.exception(f"Error during game execution: {ex}")
            self._events.emit(self._id, "workflow.failed", {"error": str(ex)})
            return self._outcome(score=0, moves=0, error=str(ex))

        outcome = self._outcome(score=self._progress.score, moves=self._progress.moves)
        self._log.info(
            f"Game ended with score: {outcome.score}, moves: {outcome.moves}, "
            f"total tokens: {outcome.usage.total_tokens}"
        )
        self._events.emit(
            self._id,
            "game.ended",
            {"state": self._state.value, "score": outcome.score, "moves": outcome.moves},
        )
        return outcome

    async def _start(self) -> str:
        game_path = self._config.game_path
        self._log.info(f"Starting game: {game_path}")
        session = await self._client.start(game_path)
        if not session.ok:
            self._log.warning(f"Game did not start cleanly, continuing with: {session.text}")
        self._session_id = session.session_id
        self._events.emit(self._id, "game.started", {"game": game_path, "session_id": session.session_id})

        await self._client.send_command(self._session_id, SETUP_COMMAND)

        self._dialogue.user(session.text)
        self._log.info(session.text)
        return session.text

    async def _play_turn(self, turn: int) -> str:
        command = await self._strategy.next_command(self._dialogue)
        self._log.info(f"> {command}")
        self._events.emit(self._id, "game.command", {"turn": turn, "command": command})

        text = await self._client.send_command(self._session_id, command)
        self._dialogue.user(text)
        self._log.info(text)
        self._events.emit(self._id, "game.response", {"turn": turn, "text": text})

        self._turns.append(
            TurnRecord(
                turn=turn,
                command=command,
                response=text,
                score=extract_score(text),
                moves=extract_moves(text),
                terminated=is_game_over(text),
            )
        )
        return text

    def _outcome(self, *, score: int, moves: int, error: str | None = None) -> WorkflowOutcome:
        return WorkflowOutcome(
            state=self._state,
            score=score,
            moves=moves,
            turns=len(self._turns),
            usage_by_model=self._strategy.usage_by_model(),
            estimated_cost=self._strategy.total_cost(self._config.custom_pricing),
            error=error,
        )
