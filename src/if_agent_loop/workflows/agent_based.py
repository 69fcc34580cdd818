from __future__ import annotations

import re
from collections.abc import Mapping

from if_agent_loop.dialogue import BoundedDialogue
from if_agent_loop.errors import AgentLoopError
from if_agent_loop.orchestrator import AgentOrchestrator
from if_agent_loop.provider import LanguageModel
from if_agent_loop.usage import ModelPricing, ModelUsage

_COMMAND_PATTERN = re.compile(
    r"^(?:.*\n)*?(?:>|I will|Let me|I'll|I should)?\s*([a-z].*?)(?:\.|$)",
    re.IGNORECASE | re.MULTILINE,
)


def extract_command(reply: str) -> str:
    """Pull the game command out of a free-text orchestrator reply."""
    match = _COMMAND_PATTERN.search(reply)
    return match.group(1).strip() if match else reply.strip()


class AgentBasedStrategy:
    """Delegates each turn to an AgentOrchestrator built without a game session.

    The workflow owns the only session, so the orchestrator has no game tool.
    Usage is the orchestrator's recursive total, read fresh on every call.
    """

    name = "Agent-Based Workflow"

    def __init__(
        self,
        main_model: LanguageModel,
        *,
        memory_model: LanguageModel | None = None,
        goal_model: LanguageModel | None = None,
        puzzle_model: LanguageModel | None = None,
        map_model: LanguageModel | None = None,
        dialogue_limit: int = 50,
        orchestrator: AgentOrchestrator | None = None,
    ) -> None:
        self._main_model = main_model
        self._specialist_models = {
            "Memory": memory_model,
            "Goals": goal_model,
            "Puzzles": puzzle_model,
            "Map": map_model,
        }
        self._orchestrator = orchestrator or AgentOrchestrator(
            main_model,
            memory_model=memory_model,
            goal_model=goal_model,
            puzzle_model=puzzle_model,
            map_model=map_model,
            dialogue_limit=dialogue_limit,
        )

    @property
    def orchestrator(self) -> AgentOrchestrator:
        return self._orchestrator

    @property
    def display_name(self) -> str:
        name = f"{self.name} ({self._main_model.model_id})"
        for label, model in self._specialist_models.items():
            if model is not None:
                name += f" + {label}({model.model_id})"
        return name

    @property
    def log_prefix(self) -> str:
        return f"agent_based_{self._main_model.model_id}"

    @property
    def system_prompt(self) -> str:
        return self._orchestrator.agent.system_prompt

    async def next_command(self, dialogue: BoundedDialogue) -> str:
        last = dialogue.last()
        if last is None or last.role != "user":
            raise AgentLoopError("Expected last message to be from user")

        reply = await self._orchestrator.process_message(last.content)
        dialogue.assistant(reply)
        return extract_command(reply)

    def usage_by_model(self) -> dict[str, ModelUsage]:
        return self._orchestrator.usage_by_model()

    def total_cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float:
        return self._orchestrator.total_cost(custom_pricing)
