import unittest

from pydantic import BaseModel, ValidationError

from if_agent_loop.tool import FunctionTool
from if_agent_loop.tool_registry import ToolRegistry


class _EchoParams(BaseModel):
    text: str


class _CountParams(BaseModel):
    n: int


async def _noop(params: BaseModel) -> str:
    return "ok"


def _tool(name: str, params: type[BaseModel] = _EchoParams) -> FunctionTool:
    return FunctionTool(name, f"{name} tool", params, _noop)


class ToolRegistryTests(unittest.TestCase):
    def test_empty_registry_has_no_decision_model(self) -> None:
        registry = ToolRegistry()
        self.assertEqual(0, len(registry))
        self.assertIsNone(registry.decision_model)

    def test_rejects_duplicates_and_reserved_name(self) -> None:
        with self.assertRaises(ValueError):
            ToolRegistry([_tool("echo"), _tool("echo")])
        with self.assertRaises(ValueError):
            ToolRegistry([_tool("respond")])

    def test_lookup(self) -> None:
        registry = ToolRegistry([_tool("echo"), _tool("count", _CountParams)])
        self.assertEqual(["echo", "count"], registry.names)
        self.assertIn("echo", registry)
        self.assertIsNone(registry.get("missing"))

    def test_decision_model_accepts_respond(self) -> None:
        model = ToolRegistry([_tool("echo")]).decision_model
        decision = model.model_validate({"decision": {"action": "respond", "response": "hi"}}).decision
        self.assertEqual("respond", decision.action)
        self.assertEqual("hi", decision.response)

    def test_decision_model_validates_tool_parameters(self) -> None:
        model = ToolRegistry([_tool("echo"), _tool("count", _CountParams)]).decision_model

        decision = model.model_validate({"decision": {"action": "count", "parameters": {"n": 3}}}).decision
        self.assertIsInstance(decision.parameters, _CountParams)
        self.assertEqual(3, decision.parameters.n)

        with self.assertRaises(ValidationError):
            model.model_validate({"decision": {"action": "count", "parameters": {"n": "many"}}})

    def test_decision_model_rejects_unregistered_action(self) -> None:
        model = ToolRegistry([_tool("echo")]).decision_model
        with self.assertRaises(ValidationError):
            model.model_validate({"decision": {"action": "delete_everything", "parameters": {}}})

    def test_schema_lists_every_variant(self) -> None:
        schema = ToolRegistry([_tool("echo"), _tool("count", _CountParams)]).decision_model.model_json_schema()
        self.assertEqual({"AgentDecision"}, {schema["title"]})
        self.assertIn("EchoCall", schema["$defs"])
        self.assertIn("CountCall", schema["$defs"])
        self.assertIn("RespondDecision", schema["$defs"])


if __name__ == "__main__":
    unittest.main()
