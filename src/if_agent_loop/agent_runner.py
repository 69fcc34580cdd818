from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from loguru import logger

from if_agent_loop.orchestrator import AgentOrchestrator
from if_agent_loop.usage import ModelPricing, ModelUsage

DEFAULT_AGENT_ITERATIONS = 100
NEXT_STEP_PROMPT = "What should I do next?"


@dataclass(frozen=True)
class AgentResult:
    agent_name: str
    score: int
    moves: int
    completed: bool
    elapsed_seconds: float
    usage: ModelUsage = field(default_factory=ModelUsage)
    estimated_cost: float = 0.0


class AgentRunner:
    """Plays a whole game with an orchestrator that owns its own game session."""

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        max_iterations: int = DEFAULT_AGENT_ITERATIONS,
        custom_pricing: Mapping[str, ModelPricing] | None = None,
    ):
        self._orchestrator = orchestrator
        self._max_iterations = max_iterations
        self._custom_pricing = dict(custom_pricing or {})

    async def run(self) -> AgentResult:
        name = self._orchestrator.name
        started = time.perf_counter()
        try:
            logger.info(f"Starting autonomous game with {name}")
            await self._orchestrator.start_game()

            for iteration in range(1, self._max_iterations + 1):
                state = self._orchestrator.game_state
                if state is None or not state.started or state.game_over:
                    break
                logger.info(f"Iteration {iteration}/{self._max_iterations}")
                reply = await self._orchestrator.process_message(NEXT_STEP_PROMPT)
                logger.info(f"Agent: {reply}")
        except Exception as ex:
            logger.error(f"Error running agent {name}: {ex}")
            return AgentResult(
                agent_name=name,
                score=0,
                moves=0,
                completed=False,
                elapsed_seconds=time.perf_counter() - started,
            )

        elapsed = time.perf_counter() - started
        state = self._orchestrator.game_state
        result = AgentResult(
            agent_name=name,
            score=state.score if state else 0,
            moves=state.moves if state else 0,
            completed=bool(state and state.game_over),
            elapsed_seconds=elapsed,
            usage=self._orchestrator.total_usage(),
            estimated_cost=self._orchestrator.total_cost(self._custom_pricing),
        )
        logger.info(
            f"Agent finished with score: {result.score}, moves: {result.moves}, "
            f"total tokens: {result.usage.total_tokens}"
        )
        return result
