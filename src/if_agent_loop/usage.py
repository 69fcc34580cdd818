from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ModelUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: ModelUsage) -> ModelUsage:
        return ModelUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class ModelPricing:
    """USD per million tokens."""

    prompt_cost_per_million: float
    completion_cost_per_million: float


DEFAULT_MODEL_PRICING: dict[str, ModelPricing] = {
    # OpenAI
    "gpt-4o": ModelPricing(2.5, 10.0),
    "gpt-4o-mini": ModelPricing(0.15, 0.6),
    "o3-mini": ModelPricing(1.1, 4.4),
    # Anthropic
    "claude-3-5-haiku-20241022": ModelPricing(0.8, 4.0),
    "claude-3-7-sonnet-20250219": ModelPricing(3.0, 15.0),
    # xAI
    "grok-2": ModelPricing(2.0, 10.0),
    "grok-2-1212": ModelPricing(2.0, 10.0),
    "default": ModelPricing(0.0, 0.0),
}


def calculate_cost(model_id: str, usage: ModelUsage, pricing: ModelPricing | None = None) -> float:
    pricing = pricing or DEFAULT_MODEL_PRICING.get(model_id) or DEFAULT_MODEL_PRICING["default"]
    prompt_cost = usage.prompt_tokens / 1_000_000 * pricing.prompt_cost_per_million
    completion_cost = usage.completion_tokens / 1_000_000 * pricing.completion_cost_per_million
    return prompt_cost + completion_cost


def calculate_total_cost(
    usage_by_model: Mapping[str, ModelUsage],
    custom_pricing: Mapping[str, ModelPricing] | None = None,
) -> float:
    custom_pricing = custom_pricing or {}
    return sum(
        calculate_cost(model_id, usage, custom_pricing.get(model_id))
        for model_id, usage in usage_by_model.items()
    )


def merge_usage(*sources: Mapping[str, ModelUsage]) -> dict[str, ModelUsage]:
    merged: dict[str, ModelUsage] = {}
    for source in sources:
        for model_id, usage in source.items():
            merged[model_id] = merged.get(model_id, ModelUsage()) + usage
    return merged


def sum_usage(usages: Iterable[ModelUsage]) -> ModelUsage:
    total = ModelUsage()
    for usage in usages:
        total = total + usage
    return total


class UsageTracker:
    """Additive per-model token accounting. Totals are never reset."""

    def __init__(self) -> None:
        self._by_model: dict[str, ModelUsage] = {}

    def track(self, model_id: str, usage: ModelUsage) -> None:
        self._by_model[model_id] = self._by_model.get(model_id, ModelUsage()) + usage

    def by_model(self) -> dict[str, ModelUsage]:
        return dict(self._by_model)

    def total(self) -> ModelUsage:
        return sum_usage(self._by_model.values())

    def cost(self, custom_pricing: Mapping[str, ModelPricing] | None = None) -> float:
        return calculate_total_cost(self._by_model, custom_pricing)
