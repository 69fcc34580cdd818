from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from if_agent_loop.dialogue import Message
from if_agent_loop.errors import ConfigurationError
from if_agent_loop.usage import ModelUsage

SUPPORTED_PROVIDERS = ("anthropic", "openai", "ollama", "xai")

_OLLAMA_DEFAULT_BASE_URL = "http://localhost:11434/v1"
_XAI_BASE_URL = "https://api.x.ai/v1"


@dataclass(frozen=True)
class Generation:
    text: str = ""
    object: BaseModel | None = None
    usage: ModelUsage = field(default_factory=ModelUsage)


@runtime_checkable
class LLMProvider(Protocol):
    async def generate_text(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str,
        messages: Sequence[Message],
    ) -> Generation:
        """Free-text completion over the dialogue."""
        ...

    async def generate_object(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str,
        messages: Sequence[Message],
        schema: type[BaseModel],
    ) -> Generation:
        """Completion constrained to ``schema``; ``Generation.object`` is a validated instance."""
        ...


@dataclass(frozen=True)
class LanguageModel:
    """A provider bound to one model id. ``model_id`` keys usage and pricing."""

    provider: LLMProvider
    model_id: str
    max_tokens: int = 4096
    temperature: float = 0.7

    async def generate_text(self, system_prompt: str, messages: Sequence[Message]) -> Generation:
        return await self.provider.generate_text(
            self.model_id,
            self.max_tokens,
            self.temperature,
            system_prompt,
            messages,
        )

    async def generate_object(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        schema: type[BaseModel],
    ) -> Generation:
        return await self.provider.generate_object(
            self.model_id,
            self.max_tokens,
            self.temperature,
            system_prompt,
            messages,
            schema,
        )


def parse_model_ref(ref: str) -> tuple[str, str]:
    """Split ``"provider:model id"`` into its two parts."""
    provider, sep, model_id = ref.partition(":")
    provider = provider.strip().lower()
    model_id = model_id.strip()
    if not sep or not provider or not model_id:
        raise ConfigurationError(f"Invalid model reference {ref!r}; expected '<provider>:<model id>'")
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider {provider!r} in {ref!r}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )
    return provider, model_id


def create_provider(provider_name: str, api_key: str, base_url: str | None = None) -> LLMProvider:
    """Factory: create an LLMProvider by name."""
    name = provider_name.strip().lower()
    if name == "anthropic":
        from if_agent_loop.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key)
    if name == "openai":
        from if_agent_loop.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, base_url=base_url)
    if name == "ollama":
        from if_agent_loop.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key or "ollama", base_url=base_url or _OLLAMA_DEFAULT_BASE_URL)
    if name == "xai":
        from if_agent_loop.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, base_url=base_url or _XAI_BASE_URL)
    raise ValueError(
        f"Unknown provider: {provider_name!r}. Supported: {', '.join(repr(p) for p in SUPPORTED_PROVIDERS)}"
    )
