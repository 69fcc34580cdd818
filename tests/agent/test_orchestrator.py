import asyncio
import unittest

from if_agent_loop.orchestrator import AgentOrchestrator
from if_agent_loop.specialists.game import NOT_STARTED
from if_agent_loop.usage import ModelPricing, ModelUsage
from tests.fakes import FakeGameClient, scripted_model

_ADD_LANTERN = {
    "decision": {
        "action": "add_memory",
        "parameters": {"type": "item", "content": "brass lantern", "importance": 7},
    }
}


class AgentOrchestratorTests(unittest.TestCase):
    def test_without_game_client_has_no_game_tool(self) -> None:
        orchestrator = AgentOrchestrator(scripted_model())

        names = orchestrator.agent.registry.names
        self.assertNotIn("send_game_command", names)
        self.assertEqual(
            [
                "add_memory",
                "retrieve_memories",
                "summarize_memories",
                "add_goal",
                "complete_goal",
                "get_goals",
                "analyze_goals",
                "add_puzzle",
                "add_clue",
                "analyze_puzzle",
                "add_location",
                "add_exit",
                "generate_map",
            ],
            names,
        )
        self.assertIsNone(orchestrator.game_state)
        self.assertEqual(NOT_STARTED, asyncio.run(orchestrator.start_game()))

    def test_with_game_client_exposes_game_tool(self) -> None:
        orchestrator = AgentOrchestrator(scripted_model(), game_client=FakeGameClient())
        self.assertEqual("send_game_command", orchestrator.agent.registry.names[0])
        self.assertEqual(5, len(orchestrator.children))

    def test_tool_forwards_instruction_to_specialist(self) -> None:
        main = scripted_model("main", texts=["Noted the lantern."], objects=[_ADD_LANTERN])
        memory = scripted_model("mem", texts=["Stored mem_1."], objects=[_ADD_LANTERN])
        orchestrator = AgentOrchestrator(main, memory_model=memory)

        reply = asyncio.run(orchestrator.process_message("There is a brass lantern here."))

        self.assertEqual("Noted the lantern.", reply)
        self.assertEqual("brass lantern", orchestrator.memory.book.all()[0].content)
        instruction = memory.provider.calls[0]["messages"][-1].content
        self.assertEqual(
            "Please add a new memory with the following details:\n"
            "Type: item\n"
            "Content: brass lantern\n"
            "Importance: 7",
            instruction,
        )
        tool_result = orchestrator.agent.dialogue.messages()[-2]
        self.assertEqual("tool", tool_result.role)
        self.assertEqual("Stored mem_1.", tool_result.content)

    def test_usage_is_recursive_and_recomputed(self) -> None:
        main = scripted_model("main", texts=["Noted."], objects=[_ADD_LANTERN])
        memory = scripted_model("mem", texts=["Stored."], objects=[_ADD_LANTERN])
        goals = scripted_model("goals", texts=["Goal analysis"])
        orchestrator = AgentOrchestrator(main, memory_model=memory, goal_model=goals)

        self.assertEqual(ModelUsage(), orchestrator.total_usage())
        asyncio.run(orchestrator.process_message("lantern"))
        self.assertEqual(
            {"main": ModelUsage(20, 10, 30), "mem": ModelUsage(20, 10, 30)},
            orchestrator.usage_by_model(),
        )

        asyncio.run(orchestrator.goals.agent.analyze("How are we doing?"))
        self.assertEqual(ModelUsage(50, 25, 75), orchestrator.total_usage())

    def test_total_cost_prices_each_model(self) -> None:
        main = scripted_model("main", texts=["Noted."], objects=[_ADD_LANTERN])
        memory = scripted_model("mem", texts=["Stored."], objects=[_ADD_LANTERN])
        orchestrator = AgentOrchestrator(main, memory_model=memory)
        asyncio.run(orchestrator.process_message("lantern"))

        pricing = {"main": ModelPricing(1.0, 1.0), "mem": ModelPricing(2.0, 2.0)}
        self.assertAlmostEqual(30 / 1_000_000 + 60 / 1_000_000, orchestrator.total_cost(pricing))

    def test_start_game_runs_intro_through_game_agent_then_orchestrator(self) -> None:
        model = scripted_model(
            objects=[
                {"decision": {"action": "respond", "response": "An open field."}},
                {"decision": {"action": "respond", "response": "Let's open the mailbox."}},
            ]
        )
        client = FakeGameClient(intro="West of House")
        orchestrator = AgentOrchestrator(model, game_client=client, game_path="zork2.z3")

        reply = asyncio.run(orchestrator.start_game())

        self.assertEqual("Let's open the mailbox.", reply)
        self.assertEqual(["zork2.z3"], client.started)
        self.assertTrue(orchestrator.game_state.started)
        self.assertEqual("An open field.", orchestrator.agent.dialogue.messages()[1].content)


if __name__ == "__main__":
    unittest.main()
