import unittest

from rich.console import Console

from if_agent_loop.agent_runner import AgentResult
from if_agent_loop.display import print_agent_report, print_workflow_report, results_table
from if_agent_loop.runner import WorkflowResult, compare_results
from if_agent_loop.usage import ModelUsage


def _result(name: str, score: int, completed: bool = True) -> WorkflowResult:
    return WorkflowResult(
        name=name,
        display_name=name,
        score=score,
        moves=10,
        completed=completed,
        elapsed_seconds=75.0,
        usage=ModelUsage(total_tokens=12_345),
        estimated_cost=0.25,
    )


class DisplayTests(unittest.TestCase):
    def _console(self) -> Console:
        return Console(record=True, width=160, color_system=None)

    def test_results_table_has_one_row_per_result(self) -> None:
        table = results_table([_result("Simple Workflow (m)", 5), _result("Reflection Workflow (m)", 7, False)])
        self.assertEqual(2, table.row_count)
        self.assertEqual(7, len(table.columns))

    def test_workflow_report(self) -> None:
        console = self._console()
        results = [_result("Simple Workflow (m)", 5), _result("Reflection Workflow (m)", 7, False)]

        print_workflow_report(results, compare_results(results), 150.0, console=console)

        text = console.export_text()
        self.assertIn("Workflow Results", text)
        self.assertIn("12,345", text)
        self.assertIn("1m 15s", text)
        self.assertIn("Best score      : Reflection Workflow (m)", text)
        self.assertIn("2m 30s", text)

    def test_empty_report_shows_placeholders(self) -> None:
        console = self._console()
        print_workflow_report([], compare_results([]), 0.0, console=console)
        self.assertIn("n/a", console.export_text())

    def test_agent_report(self) -> None:
        console = self._console()
        result = AgentResult("Agent Orchestrator", score=35, moves=80, completed=True, elapsed_seconds=10.0)

        print_agent_report(result, console=console)

        text = console.export_text()
        self.assertIn("Agent Orchestrator", text)
        self.assertIn("completed", text)
        self.assertIn("35", text)


if __name__ == "__main__":
    unittest.main()
