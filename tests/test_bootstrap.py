import unittest

from if_agent_loop.app_config import AgentSpec, RuntimeEnv, WorkflowSpec, parse_app_config
from if_agent_loop.bootstrap import ModelFactory, build_agent_runner, build_strategy, build_workflows
from if_agent_loop.errors import ConfigurationError
from if_agent_loop.events import NullEventEmitter
from if_agent_loop.providers.anthropic_provider import AnthropicProvider
from if_agent_loop.providers.openai_provider import OpenAIProvider
from if_agent_loop.workflows.agent_based import AgentBasedStrategy
from if_agent_loop.workflows.reflection import ReflectionStrategy
from if_agent_loop.workflows.simple import ReasoningStrategy, SimpleStrategy
from tests.fakes import FakeGameClient


def _env(**keys) -> RuntimeEnv:
    return RuntimeEnv(
        anthropic_api_key=keys.get("anthropic", ""),
        openai_api_key=keys.get("openai", ""),
        xai_api_key=keys.get("xai", ""),
        ollama_base_url=None,
        game_api_url="http://localhost:8080",
    )


class ModelFactoryTests(unittest.TestCase):
    def test_missing_key_is_a_configuration_error(self) -> None:
        factory = ModelFactory(_env(openai="sk-test"))
        with self.assertRaises(ConfigurationError) as ctx:
            factory.model("anthropic:claude-3-5-sonnet-latest")
        self.assertIn("ANTHROPIC_API_KEY", str(ctx.exception))

    def test_one_provider_per_backend(self) -> None:
        factory = ModelFactory(_env(openai="sk-test", anthropic="sk-ant"), max_tokens=512, temperature=0.2)

        first = factory.model("openai:gpt-4o")
        second = factory.model("openai:gpt-4o-mini")
        claude = factory.model("anthropic:claude-3-5-haiku-latest")

        self.assertIs(first.provider, second.provider)
        self.assertIsInstance(first.provider, OpenAIProvider)
        self.assertIsInstance(claude.provider, AnthropicProvider)
        self.assertEqual(("gpt-4o-mini", 512, 0.2), (second.model_id, second.max_tokens, second.temperature))

    def test_ollama_needs_no_key(self) -> None:
        model = ModelFactory(_env()).model("ollama:llama3.1")
        self.assertEqual("llama3.1", model.model_id)
        self.assertIsNone(ModelFactory(_env()).optional(None))


class BuildStrategyTests(unittest.TestCase):
    def test_each_kind(self) -> None:
        factory = ModelFactory(_env(openai="sk-test"))
        cases = [
            ("simple", SimpleStrategy),
            ("reasoning", ReasoningStrategy),
            ("reflection", ReflectionStrategy),
            ("agent_based", AgentBasedStrategy),
        ]
        for kind, expected in cases:
            with self.subTest(kind=kind):
                strategy = build_strategy(WorkflowSpec(kind=kind, command_model="openai:gpt-4o"), factory)
                self.assertIsInstance(strategy, expected)

    def test_workflows_carry_overrides(self) -> None:
        app = parse_app_config(
            {"Workflows": [{"Kind": "simple", "CommandModel": "openai:gpt-4o", "MaxIterations": 5}]}
        )
        workflows = build_workflows(app, ModelFactory(_env(openai="sk-test")), FakeGameClient(), NullEventEmitter())

        self.assertEqual(1, len(workflows))
        self.assertTrue(workflows[0].display_name.endswith("[iterations=5]"))
        self.assertTrue(workflows[0].id.startswith("simple_gpt-4o_"))

    def test_agent_runner_uses_agent_spec(self) -> None:
        app = parse_app_config({"RunMode": "agent", "Agent": {"Model": "openai:gpt-4o", "Name": "Explorer"}})
        runner = build_agent_runner(
            app,
            AgentSpec(model="openai:gpt-4o", name="Explorer"),
            ModelFactory(_env(openai="sk-test")),
            FakeGameClient(),
            NullEventEmitter(),
        )
        self.assertEqual("Explorer", runner._orchestrator.name)
        self.assertIsNotNone(runner._orchestrator.game)


if __name__ == "__main__":
    unittest.main()
