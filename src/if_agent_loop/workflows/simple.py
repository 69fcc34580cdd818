from __future__ import annotations

from collections.abc import Mapping

from loguru import logger
from pydantic import BaseModel, Field

from if_agent_loop.dialogue import BoundedDialogue
from if_agent_loop.provider import LanguageModel
from if_agent_loop.system_prompt import GAME_SOLVER_PROMPT
from if_agent_loop.usage import ModelPricing, ModelUsage, UsageTracker


class NextCommand(BaseModel):
    command: str = Field(description="The next command to execute")


class ReasonedCommand(BaseModel):
    think: str = Field(description="The reasoning for the next command")
    command: str = Field(
        description="The next command to execute (a simple verb noun combo, like 'go north' or 'take apple')"
    )


class TrackedStrategy:
    """Shared usage bookkeeping for strategies that call models directly."""

    def __init__(self) -> None:
        self._usage = UsageTracker()

    def usage_by_model(self) -> dict[str, ModelUsage]:
        return self._usage.by_model()

    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float:
        return self._usage.cost(custom_pricing)


class SimpleStrategy(TrackedStrategy):
    """One structured ``{command}`` generation per turn."""

    name = "Simple Workflow"
    prefix = "simple"

    def __init__(self, command_model: LanguageModel, system_prompt: str = GAME_SOLVER_PROMPT):
        super().__init__()
        self._model = command_model
        self._system_prompt = system_prompt

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self._model.model_id})"

    @property
    def log_prefix(self) -> str:
        return f"{self.prefix}_{self._model.model_id}"

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def next_command(self, dialogue: BoundedDialogue) -> str:
        generation = await self._model.generate_object(self._system_prompt, dialogue.messages(), NextCommand)
        self._usage.track(self._model.model_id, generation.usage)
        command = generation.object.command
        dialogue.assistant(command)
        return command


class ReasoningStrategy(SimpleStrategy):
    """Like SimpleStrategy, but the model writes its reasoning before the command."""

    name = "Simple Reasoning Workflow"
    prefix = "simple_reasoning"

    async def next_command(self, dialogue: BoundedDialogue) -> str:
        generation = await self._model.generate_object(self._system_prompt, dialogue.messages(), ReasonedCommand)
        self._usage.track(self._model.model_id, generation.usage)
        decision = generation.object
        dialogue.assistant(decision)
        logger.info(f"think: {decision.think}")
        return decision.command
