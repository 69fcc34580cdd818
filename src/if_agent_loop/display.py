from __future__ import annotations

from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from if_agent_loop.agent_runner import AgentResult
from if_agent_loop.runner import ComparisonSummary, WorkflowResult, format_duration


def results_table(results: Sequence[WorkflowResult]) -> Table:
    table = Table(
        title="Workflow Results",
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("Workflow", style="bold white", max_width=40)
    table.add_column("Score", justify="right")
    table.add_column("Moves", justify="right")
    table.add_column("Completed", justify="center")
    table.add_column("Time", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")

    for result in results:
        table.add_row(
            result.display_name,
            str(result.score),
            str(result.moves),
            "[green]Yes[/green]" if result.completed else "[red]No[/red]",
            format_duration(result.elapsed_seconds),
            f"{result.usage.total_tokens:,}",
            f"${result.estimated_cost:.4f}",
        )
    return table


def _pick(result: WorkflowResult | None) -> str:
    return result.display_name if result is not None else "[dim]n/a[/dim]"


def summary_panel(summary: ComparisonSummary, total_seconds: float) -> Panel:
    body = "\n".join(
        [
            f"[dim]Best score      :[/dim] {_pick(summary.best_by_score)}",
            f"[dim]Score per move  :[/dim] {_pick(summary.most_efficient)}",
            f"[dim]Fastest         :[/dim] {_pick(summary.fastest)}",
            f"[dim]Score per token :[/dim] {_pick(summary.most_token_efficient)}",
            f"[dim]Score per dollar:[/dim] {_pick(summary.most_cost_efficient)}",
            "",
            f"[dim]Total tokens    :[/dim] {summary.total_tokens:,}",
            f"[dim]Total cost      :[/dim] ${summary.total_cost:.6f}",
            f"[dim]Total time      :[/dim] {format_duration(total_seconds)}",
        ]
    )
    return Panel(body, title="[bold cyan]Comparison[/bold cyan]", border_style="cyan", padding=(0, 2))


def agent_panel(result: AgentResult) -> Panel:
    status = "[green]completed[/green]" if result.completed else "[yellow]not completed[/yellow]"
    body = "\n".join(
        [
            f"[dim]Score :[/dim] {result.score}",
            f"[dim]Moves :[/dim] {result.moves}",
            f"[dim]Status:[/dim] {status}",
            f"[dim]Time  :[/dim] {format_duration(result.elapsed_seconds)}",
            f"[dim]Tokens:[/dim] {result.usage.total_tokens:,}",
            f"[dim]Cost  :[/dim] ${result.estimated_cost:.6f}",
        ]
    )
    return Panel(body, title=f"[bold cyan]{result.agent_name}[/bold cyan]", border_style="cyan", padding=(0, 2))


def print_workflow_report(
    results: Sequence[WorkflowResult],
    summary: ComparisonSummary,
    total_seconds: float,
    console: Console | None = None,
) -> None:
    console = console or Console()
    console.print()
    console.print(results_table(results))
    console.print(summary_panel(summary, total_seconds))


def print_agent_report(result: AgentResult, console: Console | None = None) -> None:
    console = console or Console()
    console.print()
    console.print(agent_panel(result))
