from __future__ import annotations

from dataclasses import dataclass, field

from if_agent_loop.agent_runner import AgentRunner
from if_agent_loop.app_config import API_KEY_ENV_VARS, AgentSpec, AppConfig, RuntimeEnv, WorkflowSpec
from if_agent_loop.errors import ConfigurationError
from if_agent_loop.events import EventEmitter, LoggingEventEmitter
from if_agent_loop.game_client import GameSessionClient
from if_agent_loop.logging_config import setup_logging
from if_agent_loop.orchestrator import AgentOrchestrator
from if_agent_loop.provider import LanguageModel, LLMProvider, create_provider, parse_model_ref
from if_agent_loop.runner import RunnerOptions, WorkflowRunner
from if_agent_loop.workflows.agent_based import AgentBasedStrategy
from if_agent_loop.workflows.base import CommandStrategy, TurnWorkflow, WorkflowConfig
from if_agent_loop.workflows.reflection import ReflectionStrategy
from if_agent_loop.workflows.simple import ReasoningStrategy, SimpleStrategy


class ModelFactory:
    """Turns ``provider:model`` references into LanguageModels, one provider per backend."""

    def __init__(self, env: RuntimeEnv, max_tokens: int = 4096, temperature: float = 0.7):
        self._env = env
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._providers: dict[str, LLMProvider] = {}

    def _provider(self, name: str) -> LLMProvider:
        if name not in self._providers:
            api_key = self._env.api_key_for(name)
            if name in API_KEY_ENV_VARS and not api_key:
                raise ConfigurationError(f"{API_KEY_ENV_VARS[name]} environment variable is required.")
            base_url = self._env.ollama_base_url if name == "ollama" else None
            self._providers[name] = create_provider(name, api_key, base_url=base_url)
        return self._providers[name]

    def model(self, ref: str) -> LanguageModel:
        provider_name, model_id = parse_model_ref(ref)
        return LanguageModel(
            provider=self._provider(provider_name),
            model_id=model_id,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

    def optional(self, ref: str | None) -> LanguageModel | None:
        return self.model(ref) if ref else None


def build_strategy(spec: WorkflowSpec, models: ModelFactory) -> CommandStrategy:
    command_model = models.model(spec.command_model)
    if spec.kind == "simple":
        return SimpleStrategy(command_model)
    if spec.kind == "reasoning":
        return ReasoningStrategy(command_model)
    if spec.kind == "reflection":
        return ReflectionStrategy(command_model, models.optional(spec.reflection_model))
    return AgentBasedStrategy(
        command_model,
        memory_model=models.optional(spec.memory_model),
        goal_model=models.optional(spec.goal_model),
        puzzle_model=models.optional(spec.puzzle_model),
        map_model=models.optional(spec.map_model),
        dialogue_limit=spec.dialogue_limit,
    )


def build_workflows(
    app: AppConfig,
    models: ModelFactory,
    client: GameSessionClient,
    events: EventEmitter,
) -> list[TurnWorkflow]:
    workflows = []
    for spec in app.workflows:
        config = WorkflowConfig(
            max_iterations=spec.max_iterations,
            game_path=spec.game_path,
            dialogue_limit=spec.dialogue_limit,
            display_name=spec.display_name,
            custom_pricing=app.custom_pricing,
        )
        workflows.append(TurnWorkflow(build_strategy(spec, models), client, config, events=events))
    return workflows


def build_agent_runner(
    app: AppConfig,
    spec: AgentSpec,
    models: ModelFactory,
    client: GameSessionClient,
    events: EventEmitter,
) -> AgentRunner:
    orchestrator = AgentOrchestrator(
        models.model(spec.model),
        game_client=client,
        game_path=spec.game_path,
        memory_model=models.optional(spec.memory_model),
        goal_model=models.optional(spec.goal_model),
        puzzle_model=models.optional(spec.puzzle_model),
        map_model=models.optional(spec.map_model),
        dialogue_limit=spec.dialogue_limit,
        events=events,
        name=spec.name,
    )
    return AgentRunner(orchestrator, app.agent_max_iterations, app.custom_pricing)


@dataclass
class AppRuntime:
    run_mode: str
    game_client: GameSessionClient
    workflow_runner: WorkflowRunner | None = None
    agent_runner: AgentRunner | None = None
    workflows: list[TurnWorkflow] = field(default_factory=list)
    log_descriptions: list[str] = field(default_factory=list)


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    events = LoggingEventEmitter()
    models = ModelFactory(env, max_tokens=app.max_tokens, temperature=app.temperature)
    client = GameSessionClient(env.game_api_url)

    if app.run_mode == "agent" and app.agent is not None:
        return AppRuntime(
            run_mode=app.run_mode,
            game_client=client,
            agent_runner=build_agent_runner(app, app.agent, models, client, events),
            log_descriptions=log_descriptions,
        )

    workflows = build_workflows(app, models, client, events)
    runner = WorkflowRunner(
        workflows,
        RunnerOptions(
            parallel=app.parallel,
            max_concurrent=app.max_concurrent,
            log_dir=app.log_dir,
            save_logs=app.save_logs,
        ),
    )
    return AppRuntime(
        run_mode=app.run_mode,
        game_client=client,
        workflow_runner=runner,
        workflows=workflows,
        log_descriptions=log_descriptions,
    )
