from __future__ import annotations

from loguru import logger

from if_agent_loop.dialogue import BoundedDialogue, Message
from if_agent_loop.provider import LanguageModel
from if_agent_loop.system_prompt import GAME_SOLVER_PROMPT, REFLECTION_INSTRUCTION
from if_agent_loop.workflows.simple import NextCommand, TrackedStrategy


class ReflectionStrategy(TrackedStrategy):
    """Reflect in free text first, then pick the command with the reflection in view.

    The reflection instruction is sent with the request but never stored in the dialogue.
    """

    name = "Reflection Workflow"

    def __init__(
        self,
        command_model: LanguageModel,
        reflection_model: LanguageModel | None = None,
        system_prompt: str = GAME_SOLVER_PROMPT,
    ):
        super().__init__()
        self._command_model = command_model
        self._reflection_model = reflection_model or command_model
        self._system_prompt = system_prompt

    @property
    def display_name(self) -> str:
        name = f"{self.name} ({self._command_model.model_id})"
        if self._reflection_model is not self._command_model:
            name += f" + Reflection({self._reflection_model.model_id})"
        return name

    @property
    def log_prefix(self) -> str:
        return f"reflection_{self._command_model.model_id}"

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def next_command(self, dialogue: BoundedDialogue) -> str:
        reflection = await self.reflect(dialogue)
        logger.debug(f"Reflection: {reflection}")

        generation = await self._command_model.generate_object(
            self._system_prompt,
            dialogue.messages(),
            NextCommand,
        )
        self._usage.track(self._command_model.model_id, generation.usage)
        command = generation.object.command
        dialogue.assistant(command)
        return command

    async def reflect(self, dialogue: BoundedDialogue) -> str:
        messages = [*dialogue.messages(), Message(role="user", content=REFLECTION_INSTRUCTION)]
        generation = await self._reflection_model.generate_text(self._system_prompt, messages)
        self._usage.track(self._reflection_model.model_id, generation.usage)
        dialogue.assistant(generation.text)
        return generation.text
