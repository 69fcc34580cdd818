from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Tool(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def parameters(self) -> type[BaseModel]: ...

    @property
    def input_schema(self) -> dict[str, Any]: ...

    async def execute(self, params: BaseModel) -> Any: ...


@dataclass(frozen=True)
class FunctionTool:
    """A tool backed by an async handler taking the validated parameters model."""

    name: str
    description: str
    parameters: type[BaseModel]
    handler: Callable[[Any], Awaitable[Any]]

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    async def execute(self, params: BaseModel) -> Any:
        return await self.handler(params)
