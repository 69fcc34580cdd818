"""Run workflows one at a time or in concurrent batches, then compare the results."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger

from if_agent_loop.logging_config import add_workflow_log, remove_workflow_log
from if_agent_loop.usage import ModelUsage
from if_agent_loop.workflows.base import WorkflowOutcome, WorkflowState


@runtime_checkable
class RunnableWorkflow(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    async def run(self) -> WorkflowOutcome: ...


@dataclass(frozen=True)
class WorkflowResult:
    name: str
    display_name: str
    score: int
    moves: int
    completed: bool
    elapsed_seconds: float
    usage: ModelUsage = field(default_factory=ModelUsage)
    usage_by_model: dict[str, ModelUsage] = field(default_factory=dict)
    estimated_cost: float = 0.0
    state: WorkflowState = WorkflowState.FAILED


@dataclass(frozen=True)
class RunnerOptions:
    parallel: bool = False
    max_concurrent: int = 0
    log_dir: str = "logs"
    save_logs: bool = False


class WorkflowRunner:
    def __init__(self, workflows: Sequence[RunnableWorkflow], options: RunnerOptions | None = None):
        self._workflows = list(workflows)
        self._options = options or RunnerOptions()

    async def run_all(self) -> list[WorkflowResult]:
        if self._options.parallel:
            return await self._run_parallel()
        return await self._run_sequential()

    async def _run_sequential(self) -> list[WorkflowResult]:
        results = []
        for workflow in self._workflows:
            logger.info(f"Running workflow: {workflow.display_name}")
            results.append(await self._run_workflow(workflow))
        return results

    async def _run_parallel(self) -> list[WorkflowResult]:
        cap = self._options.max_concurrent
        if cap <= 0 or cap >= len(self._workflows):
            logger.info(f"Running all {len(self._workflows)} workflows concurrently")
            return list(await asyncio.gather(*(self._run_workflow(w) for w in self._workflows)))

        logger.info(f"Running {len(self._workflows)} workflows with max concurrency of {cap}")
        results: list[WorkflowResult] = []
        for start in range(0, len(self._workflows), cap):
            batch = self._workflows[start : start + cap]
            logger.info(f"Processing batch {start // cap + 1} ({len(batch)} workflows)")
            results.extend(await asyncio.gather(*(self._run_workflow(w) for w in batch)))
        return results

    async def _run_workflow(self, workflow: RunnableWorkflow) -> WorkflowResult:
        sink_id = None
        if self._options.save_logs:
            sink_id = add_workflow_log(Path(self._options.log_dir) / f"{workflow.id}.log", workflow.id)

        started = time.perf_counter()
        try:
            with logger.contextualize(workflow=workflow.id):
                outcome = await workflow.run()
        except Exception as ex:
            elapsed = time.perf_counter() - started
            logger.error(f"Error running workflow {workflow.display_name}: {ex}")
            return WorkflowResult(
                name=workflow.name,
                display_name=workflow.display_name,
                score=0,
                moves=0,
                completed=False,
                elapsed_seconds=elapsed,
            )
        finally:
            if sink_id is not None:
                remove_workflow_log(sink_id)

        elapsed = time.perf_counter() - started
        return WorkflowResult(
            name=workflow.name,
            display_name=workflow.display_name,
            score=outcome.score,
            moves=outcome.moves,
            completed=outcome.completed,
            elapsed_seconds=elapsed,
            usage=outcome.usage,
            usage_by_model=dict(outcome.usage_by_model),
            estimated_cost=outcome.estimated_cost,
            state=outcome.state,
        )


@dataclass(frozen=True)
class ComparisonSummary:
    best_by_score: WorkflowResult | None
    most_efficient: WorkflowResult | None
    fastest: WorkflowResult | None
    most_token_efficient: WorkflowResult | None
    most_cost_efficient: WorkflowResult | None
    total_tokens: int
    total_cost: float


def _best_ratio(
    results: Sequence[WorkflowResult],
    denominator: Callable[[WorkflowResult], float],
) -> WorkflowResult | None:
    """Highest score per unit; zero denominators are skipped, first wins on ties."""
    if not results:
        return None
    best = None
    best_ratio = 0.0
    for result in results:
        value = denominator(result)
        if value == 0:
            continue
        ratio = result.score / value
        if best is None or ratio > best_ratio:
            best, best_ratio = result, ratio
    return best if best is not None else results[0]


def compare_results(results: Sequence[WorkflowResult]) -> ComparisonSummary:
    best_by_score = None
    fastest = None
    for result in results:
        if best_by_score is None or result.score > best_by_score.score:
            best_by_score = result
        if fastest is None or result.elapsed_seconds < fastest.elapsed_seconds:
            fastest = result

    return ComparisonSummary(
        best_by_score=best_by_score,
        most_efficient=_best_ratio(results, lambda r: r.moves),
        fastest=fastest,
        most_token_efficient=_best_ratio(results, lambda r: r.usage.total_tokens),
        most_cost_efficient=_best_ratio(results, lambda r: r.estimated_cost),
        total_tokens=sum(r.usage.total_tokens for r in results),
        total_cost=sum(r.estimated_cost for r in results),
    )


def format_duration(seconds: float) -> str:
    """``Xh Ym Zs``, dropping only leading zero units."""
    hours, remaining = divmod(int(seconds), 3_600)
    minutes, secs = divmod(remaining, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


_COLUMNS = (
    ("Workflow", 40),
    ("Score", 10),
    ("Moves", 10),
    ("Completed", 12),
    ("Time", 15),
    ("Tokens", 12),
    ("Cost", 12),
)


def format_results_table(results: Sequence[WorkflowResult]) -> str:
    header = " | ".join(title.ljust(width) for title, width in _COLUMNS)
    rule = "-+-".join("-" * width for _, width in _COLUMNS)
    lines = [header, rule]
    for result in results:
        cells = (
            result.display_name,
            str(result.score),
            str(result.moves),
            "Yes" if result.completed else "No",
            format_duration(result.elapsed_seconds),
            str(result.usage.total_tokens),
            f"${result.estimated_cost:.4f}",
        )
        lines.append(" | ".join(cell.ljust(width) for cell, (_, width) in zip(cells, _COLUMNS)))
    return "\n".join(lines)


def log_comparison(summary: ComparisonSummary) -> None:
    if summary.best_by_score is not None:
        logger.info(f"Best performing workflow by score: {summary.best_by_score.display_name}")
    if summary.most_efficient is not None:
        logger.info(f"Most efficient workflow (score/moves): {summary.most_efficient.display_name}")
    if summary.fastest is not None:
        logger.info(f"Fastest workflow: {summary.fastest.display_name}")
    if summary.most_token_efficient is not None:
        logger.info(f"Most token-efficient workflow: {summary.most_token_efficient.display_name}")
    if summary.most_cost_efficient is not None:
        logger.info(f"Most cost-efficient workflow: {summary.most_cost_efficient.display_name}")
    logger.info(f"Total tokens used across all workflows: {summary.total_tokens}")
    logger.info(f"Total estimated cost: ${summary.total_cost:.6f}")
