from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

from loguru import logger

from if_agent_loop.dialogue import BoundedDialogue
from if_agent_loop.errors import GenerationError
from if_agent_loop.provider import LanguageModel
from if_agent_loop.tool_registry import RESPOND_ACTION, ToolRegistry
from if_agent_loop.usage import ModelUsage


def new_tool_call_id() -> str:
    return f"call_{uuid4().hex[:16]}"


class TurnEngine:
    """Runs one dispatch turn: respond directly, or call exactly one tool and summarise its result."""

    def __init__(
        self,
        *,
        model: LanguageModel,
        system_prompt: str,
        dialogue: BoundedDialogue,
        registry: ToolRegistry,
        on_usage: Callable[[str, ModelUsage], None],
        on_tool_started: Callable[[str, str], None],
        on_tool_completed: Callable[[str, str, bool], None],
        on_reply: Callable[[str], None],
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt
        self._dialogue = dialogue
        self._registry = registry
        self._on_usage = on_usage
        self._on_tool_started = on_tool_started
        self._on_tool_completed = on_tool_completed
        self._on_reply = on_reply

    async def run(self, user_message: str) -> str:
        self._dialogue.user(user_message)

        decision_model = self._registry.decision_model
        if decision_model is None:
            return await self._reply()

        try:
            generation = await self._model.generate_object(
                self._system_prompt,
                self._dialogue.messages(),
                decision_model,
            )
        except Exception as ex:
            return self._generation_failed(ex)
        self._on_usage(self._model.model_id, generation.usage)

        decision = generation.object.decision
        if decision.action == RESPOND_ACTION:
            return self._finish(decision.response)

        tool_name = decision.action
        tool = self._registry.get(tool_name)
        if tool is None:
            logger.warning(f"Tool {tool_name} not found")
            return self._finish(f'Error: unknown tool "{tool_name}"')

        tool_call_id = new_tool_call_id()
        self._dialogue.tool_call(tool_call_id, tool_name, decision.parameters)
        self._on_tool_started(tool_call_id, tool_name)
        try:
            result = await tool.execute(decision.parameters)
        except Exception as ex:
            logger.error(f"Error executing tool {tool_name}: {ex}")
            self._on_tool_completed(tool_call_id, tool_name, True)
            return self._finish(f'Error executing tool "{tool_name}": {ex}')
        self._on_tool_completed(tool_call_id, tool_name, False)

        self._dialogue.tool(tool_call_id, tool_name, result)
        return await self._reply()

    async def _reply(self) -> str:
        try:
            generation = await self._model.generate_text(self._system_prompt, self._dialogue.messages())
        except Exception as ex:
            return self._generation_failed(ex)
        self._on_usage(self._model.model_id, generation.usage)
        return self._finish(generation.text)

    def _generation_failed(self, ex: Exception) -> str:
        if isinstance(ex, GenerationError):
            logger.warning(f"Generation failed: {ex}")
            self._on_usage(self._model.model_id, ex.usage)
        else:
            logger.error(f"Model call failed: {ex}")
        return self._finish(f"Error generating response: {ex}")

    def _finish(self, text: str) -> str:
        self._dialogue.assistant(text)
        self._on_reply(text)
        return text
