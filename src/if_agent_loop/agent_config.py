from dataclasses import dataclass, field

from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.provider import LanguageModel
from if_agent_loop.system_prompt import DEFAULT_AGENT_PROMPT
from if_agent_loop.tool import Tool
from if_agent_loop.usage import ModelPricing


@dataclass
class AgentConfig:
    model: LanguageModel
    name: str = ""
    system_prompt: str = DEFAULT_AGENT_PROMPT
    tools: list[Tool] = field(default_factory=list)
    dialogue_limit: int = 50
    events: EventEmitter = field(default_factory=NullEventEmitter)
    custom_pricing: dict[str, ModelPricing] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or f"Agent ({self.model.model_id})"
