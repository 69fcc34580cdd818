from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from if_agent_loop.errors import ConfigurationError
from if_agent_loop.game_client import DEFAULT_GAME_API_URL
from if_agent_loop.provider import parse_model_ref
from if_agent_loop.usage import ModelPricing
from if_agent_loop.workflows.base import DEFAULT_DIALOGUE_LIMIT, DEFAULT_GAME_PATH, DEFAULT_MAX_ITERATIONS

WORKFLOW_KINDS = ("simple", "reasoning", "reflection", "agent_based")
RUN_MODES = ("workflow", "agent")


@dataclass
class RuntimeEnv:
    anthropic_api_key: str
    openai_api_key: str
    xai_api_key: str
    ollama_base_url: str | None
    game_api_url: str

    def api_key_for(self, provider_name: str) -> str:
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "xai": self.xai_api_key,
        }.get(provider_name, "")


API_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "xai": "XAI_API_KEY",
}


@dataclass
class WorkflowSpec:
    kind: str
    command_model: str
    reflection_model: str | None = None
    memory_model: str | None = None
    goal_model: str | None = None
    puzzle_model: str | None = None
    map_model: str | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    game_path: str = DEFAULT_GAME_PATH
    dialogue_limit: int = DEFAULT_DIALOGUE_LIMIT
    display_name: str | None = None

    def model_refs(self) -> list[str]:
        refs = [
            self.command_model,
            self.reflection_model,
            self.memory_model,
            self.goal_model,
            self.puzzle_model,
            self.map_model,
        ]
        return [ref for ref in refs if ref]


@dataclass
class AgentSpec:
    model: str
    memory_model: str | None = None
    goal_model: str | None = None
    puzzle_model: str | None = None
    map_model: str | None = None
    game_path: str = DEFAULT_GAME_PATH
    dialogue_limit: int = DEFAULT_DIALOGUE_LIMIT
    name: str = "Agent Orchestrator"

    def model_refs(self) -> list[str]:
        refs = [self.model, self.memory_model, self.goal_model, self.puzzle_model, self.map_model]
        return [ref for ref in refs if ref]


@dataclass
class AppConfig:
    parallel: bool
    max_concurrent: int
    log_dir: str
    save_logs: bool
    log_level: str
    log_consumers: list | None
    run_mode: str
    agent_max_iterations: int
    max_tokens: int
    temperature: float
    workflows: list[WorkflowSpec] = field(default_factory=list)
    agent: AgentSpec | None = None
    custom_pricing: dict[str, ModelPricing] = field(default_factory=dict)


def load_json_config(path: str | Path | None = None) -> dict:
    config_path = Path(path) if path else Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _to_int(value: object, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as ex:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from ex


def _to_float(value: object, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as ex:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from ex


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _parse_workflow(entry: dict) -> WorkflowSpec:
    kind = str(entry.get("Kind", "simple")).strip().lower()
    if kind not in WORKFLOW_KINDS:
        raise ConfigurationError(f"Unknown workflow kind {kind!r}. Supported: {', '.join(WORKFLOW_KINDS)}")
    command_model = _optional_str(entry.get("CommandModel"))
    if command_model is None:
        raise ConfigurationError(f"Workflow of kind {kind!r} is missing CommandModel")

    spec = WorkflowSpec(
        kind=kind,
        command_model=command_model,
        reflection_model=_optional_str(entry.get("ReflectionModel")),
        memory_model=_optional_str(entry.get("MemoryModel")),
        goal_model=_optional_str(entry.get("GoalModel")),
        puzzle_model=_optional_str(entry.get("PuzzleModel")),
        map_model=_optional_str(entry.get("MapModel")),
        max_iterations=_to_int(entry.get("MaxIterations", DEFAULT_MAX_ITERATIONS), "MaxIterations"),
        game_path=str(entry.get("GamePath", DEFAULT_GAME_PATH)),
        dialogue_limit=_to_int(entry.get("DialogueLimit", DEFAULT_DIALOGUE_LIMIT), "DialogueLimit"),
        display_name=_optional_str(entry.get("DisplayName")),
    )
    for ref in spec.model_refs():
        parse_model_ref(ref)
    if spec.max_iterations <= 0:
        raise ConfigurationError(f"MaxIterations must be positive, got {spec.max_iterations}")
    if spec.dialogue_limit <= 0:
        raise ConfigurationError(f"DialogueLimit must be positive, got {spec.dialogue_limit}")
    return spec


def _parse_agent(entry: dict) -> AgentSpec:
    model = _optional_str(entry.get("Model"))
    if model is None:
        raise ConfigurationError("Agent section is missing Model")
    spec = AgentSpec(
        model=model,
        memory_model=_optional_str(entry.get("MemoryModel")),
        goal_model=_optional_str(entry.get("GoalModel")),
        puzzle_model=_optional_str(entry.get("PuzzleModel")),
        map_model=_optional_str(entry.get("MapModel")),
        game_path=str(entry.get("GamePath", DEFAULT_GAME_PATH)),
        dialogue_limit=_to_int(entry.get("DialogueLimit", DEFAULT_DIALOGUE_LIMIT), "DialogueLimit"),
        name=str(entry.get("Name", "Agent Orchestrator")),
    )
    for ref in spec.model_refs():
        parse_model_ref(ref)
    return spec


def _parse_pricing(section: dict) -> dict[str, ModelPricing]:
    return {
        model_id: ModelPricing(
            prompt_cost_per_million=_to_float(
                entry.get("PromptCostPerMillion", 0.0), f"CustomPricing.{model_id}.PromptCostPerMillion"
            ),
            completion_cost_per_million=_to_float(
                entry.get("CompletionCostPerMillion", 0.0), f"CustomPricing.{model_id}.CompletionCostPerMillion"
            ),
        )
        for model_id, entry in section.items()
    }


def parse_app_config(config: dict) -> AppConfig:
    run_mode = str(config.get("RunMode", "workflow")).strip().lower()
    if run_mode not in RUN_MODES:
        raise ConfigurationError(f"Unknown run mode {run_mode!r}. Supported: {', '.join(RUN_MODES)}")

    workflows = [_parse_workflow(entry) for entry in config.get("Workflows", [])]
    agent_section = config.get("Agent")
    agent = _parse_agent(agent_section) if agent_section else None

    if run_mode == "workflow" and not workflows:
        raise ConfigurationError("No workflows configured. Add at least one entry under Workflows.")
    if run_mode == "agent" and agent is None:
        raise ConfigurationError("Run mode 'agent' requires an Agent section.")

    return AppConfig(
        parallel=_to_bool(config.get("Parallel", False), default=False),
        max_concurrent=_to_int(config.get("MaxConcurrent", 0), "MaxConcurrent"),
        log_dir=str(config.get("LogDir", "logs")),
        save_logs=_to_bool(config.get("SaveLogs", True), default=True),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
        run_mode=run_mode,
        agent_max_iterations=_to_int(config.get("AgentMaxIterations", DEFAULT_MAX_ITERATIONS), "AgentMaxIterations"),
        max_tokens=_to_int(config.get("MaxTokens", 4096), "MaxTokens"),
        temperature=_to_float(config.get("Temperature", 0.7), "Temperature"),
        workflows=workflows,
        agent=agent,
        custom_pricing=_parse_pricing(config.get("CustomPricing", {})),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        xai_api_key=os.environ.get("XAI_API_KEY", ""),
        ollama_base_url=os.environ.get("OLLAMA_BASE_URL"),
        game_api_url=os.environ.get("IF_GAME_API_URL", DEFAULT_GAME_API_URL),
    )
