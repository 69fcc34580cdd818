import asyncio
import unittest

from if_agent_loop.errors import AgentLoopError
from if_agent_loop.usage import ModelUsage
from if_agent_loop.workflows.base import TurnWorkflow, WorkflowConfig, WorkflowState
from if_agent_loop.workflows.simple import SimpleStrategy
from tests.fakes import FakeGameClient, RecordingEvents, scripted_model


def _commands(*names: str) -> list[dict]:
    return [{"command": name} for name in names]


def _workflow(objects, client, config=None, events=None) -> TurnWorkflow:
    strategy = SimpleStrategy(scripted_model(objects=objects))
    return TurnWorkflow(strategy, client, config, events=events, workflow_id="wf-test")


class TurnWorkflowTests(unittest.TestCase):
    def test_terminates_after_second_response_with_death(self) -> None:
        client = FakeGameClient(
            responses=[
                "Forest. Score: 0 Moves: 1",
                "A grue appears. You have died. Score: 0 Moves: 2",
                "never reached",
            ]
        )
        workflow = _workflow(_commands("north", "east", "south"), client)

        outcome = asyncio.run(workflow.run())

        self.assertEqual(WorkflowState.COMPLETED, outcome.state)
        self.assertTrue(outcome.completed)
        self.assertEqual(2, outcome.turns)
        self.assertEqual(2, outcome.moves)
        self.assertEqual(["north", "east"], client.game_commands())

    def test_runs_exactly_max_iterations_without_termination(self) -> None:
        client = FakeGameClient()
        workflow = _workflow(_commands("a", "b", "c", "d"), client, WorkflowConfig(max_iterations=3))

        outcome = asyncio.run(workflow.run())

        self.assertEqual(WorkflowState.TIMED_OUT, outcome.state)
        self.assertFalse(outcome.completed)
        self.assertEqual(3, outcome.turns)
        self.assertEqual(["a", "b", "c"], client.game_commands())

    def test_setup_command_is_sent_once_and_discarded(self) -> None:
        client = FakeGameClient(responses=["You have won!"])
        workflow = _workflow(_commands("xyzzy"), client)

        asyncio.run(workflow.run())

        self.assertEqual(("session-1", "verbose"), client.commands[0])
        self.assertEqual(1, sum(1 for _, command in client.commands if command == "verbose"))
        contents = [m.content for m in workflow.dialogue.messages()]
        self.assertNotIn("Maximum verbosity.", contents)

    def test_dialogue_order(self) -> None:
        client = FakeGameClient(intro="West of House", responses=["Thanks for playing."])
        workflow = _workflow(_commands("quit"), client)

        asyncio.run(workflow.run())

        messages = workflow.dialogue.messages()
        self.assertEqual(["system", "user", "assistant", "user"], [m.role for m in messages])
        self.assertEqual(["West of House", "quit", "Thanks for playing."], [m.content for m in messages[1:]])

    def test_score_and_moves_persist_and_update_at_exit(self) -> None:
        client = FakeGameClient(
            responses=[
                "Score: 5 Moves: 1",
                "It is dark.",
                "Score: 10 Moves: 3",
            ]
        )
        workflow = _workflow(_commands("a", "b", "c"), client, WorkflowConfig(max_iterations=3))

        outcome = asyncio.run(workflow.run())

        self.assertEqual(10, outcome.score)
        self.assertEqual(3, outcome.moves)
        moves = [turn.moves for turn in workflow.turns if turn.moves is not None]
        self.assertEqual(sorted(moves), moves)

    def test_failed_start_plays_on_with_error_text(self) -> None:
        client = FakeGameClient(session_id="")
        events = RecordingEvents()
        workflow = _workflow(_commands("look"), client, WorkflowConfig(max_iterations=1), events=events)

        outcome = asyncio.run(workflow.run())

        self.assertEqual(WorkflowState.TIMED_OUT, outcome.state)
        self.assertEqual([("", "verbose"), ("", "look")], client.commands)
        self.assertTrue(workflow.dialogue.messages()[1].content.startswith("Error: Failed to start game"))
        self.assertNotIn("workflow.failed", events.types())

    def test_strategy_failure_keeps_usage(self) -> None:
        client = FakeGameClient(responses=["Score: 5 Moves: 1"])
        workflow = _workflow([{"command": "north"}, RuntimeError("model down")], client)

        outcome = asyncio.run(workflow.run())

        self.assertEqual(WorkflowState.FAILED, outcome.state)
        self.assertEqual(0, outcome.score)
        self.assertEqual(ModelUsage(10, 5, 15), outcome.usage)
        self.assertEqual("model down", outcome.error)

    def test_cannot_run_twice(self) -> None:
        workflow = _workflow(_commands("quit"), FakeGameClient(responses=["Game over"]))
        asyncio.run(workflow.run())
        with self.assertRaises(AgentLoopError):
            asyncio.run(workflow.run())

    def test_events(self) -> None:
        events = RecordingEvents()
        workflow = _workflow(_commands("quit"), FakeGameClient(responses=["The End"]), events=events)

        asyncio.run(workflow.run())

        self.assertEqual(["game.started", "game.command", "game.response", "game.ended"], events.types())
        self.assertEqual("wf-test", events.events[0][0])

    def test_display_name_lists_overrides(self) -> None:
        workflow = _workflow([], FakeGameClient(), WorkflowConfig(max_iterations=10, game_path="zork2.z3"))
        self.assertEqual("Simple Workflow (test-model)", workflow.name)
        self.assertEqual("Simple Workflow (test-model) [iterations=10, game=zork2.z3]", workflow.display_name)

        named = _workflow([], FakeGameClient(), WorkflowConfig(display_name="Baseline"))
        self.assertEqual("Baseline", named.display_name)

    def test_generated_id_uses_log_prefix(self) -> None:
        workflow = TurnWorkflow(SimpleStrategy(scripted_model("gpt-4o-mini")), FakeGameClient())
        self.assertTrue(workflow.id.startswith("simple_gpt-4o-mini_"))


if __name__ == "__main__":
    unittest.main()
