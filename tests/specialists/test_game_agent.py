import asyncio
import unittest

from if_agent_loop.specialists.game import NOT_STARTED, GameAgent, GameState
from tests.fakes import FakeGameClient, RecordingEvents, scripted_model


class GameAgentTests(unittest.TestCase):
    def test_command_before_start(self) -> None:
        agent = GameAgent(scripted_model(), FakeGameClient())
        self.assertEqual(NOT_STARTED, asyncio.run(agent.send_command("look")))
        self.assertEqual(GameState(score=0, moves=0, started=False, game_over=False), agent.game_state)

    def test_start_processes_intro(self) -> None:
        model = scripted_model(objects=[{"decision": {"action": "respond", "response": "A white house."}}])
        client = FakeGameClient(intro="West of House")
        events = RecordingEvents()
        agent = GameAgent(model, client, game_path="zork1.z3", events=events)

        reply = asyncio.run(agent.start_game())

        self.assertEqual("A white house.", reply)
        self.assertTrue(agent.game_state.started)
        self.assertEqual(["system", "user", "assistant"], [m.role for m in agent.agent.dialogue.messages()])
        self.assertEqual("West of House", agent.agent.dialogue.messages()[1].content)
        self.assertEqual("game.started", events.types()[0])

    def test_failed_start_returns_error_text(self) -> None:
        model = scripted_model()
        agent = GameAgent(model, FakeGameClient(session_id=""))

        text = asyncio.run(agent.start_game())

        self.assertTrue(text.startswith("Error: Failed to start game"))
        self.assertFalse(agent.game_state.started)
        self.assertEqual([], model.provider.calls)

    def test_moves_score_and_game_over(self) -> None:
        client = FakeGameClient(responses=["Score: 5 Moves: 40", "You have died."])
        events = RecordingEvents()
        agent = GameAgent(
            scripted_model(objects=[{"decision": {"action": "respond", "response": "ok"}}]),
            client,
            events=events,
        )
        asyncio.run(agent.start_game())

        asyncio.run(agent.send_command("open mailbox"))
        asyncio.run(agent.send_command("jump"))

        self.assertEqual(GameState(score=5, moves=2, started=True, game_over=True), agent.game_state)
        self.assertEqual(["open mailbox", "jump"], client.game_commands())
        self.assertIn("game.ended", events.types())

    def test_tool_sends_command(self) -> None:
        model = scripted_model(
            texts=["The mailbox is open."],
            objects=[
                {"decision": {"action": "respond", "response": "ready"}},
                {"decision": {"action": "send_game_command", "parameters": {"command": "open mailbox"}}},
            ],
        )
        client = FakeGameClient(responses=["Opening the small mailbox reveals a leaflet."])
        agent = GameAgent(model, client)
        asyncio.run(agent.start_game())

        reply = asyncio.run(agent.process_message("open mailbox"))

        self.assertEqual("The mailbox is open.", reply)
        self.assertEqual(["open mailbox"], client.game_commands())
        self.assertEqual(
            "Opening the small mailbox reveals a leaflet.",
            agent.agent.dialogue.messages()[-2].content,
        )


if __name__ == "__main__":
    unittest.main()
