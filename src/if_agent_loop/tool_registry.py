from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, create_model

from if_agent_loop.tool import Tool

RESPOND_ACTION = "respond"


class RespondDecision(BaseModel):
    """Answer the user directly without calling a tool."""

    action: Literal["respond"]
    response: str = Field(description="The reply to send back.")


def _variant_name(tool_name: str) -> str:
    return "".join(part.capitalize() for part in tool_name.replace("-", "_").split("_")) + "Call"


def build_decision_model(tools: Iterable[Tool]) -> type[BaseModel]:
    """Build the closed decision type: ``respond`` plus one variant per tool.

    The union is wrapped in an object root so every backend receives an object schema.
    """
    variants: list[type[BaseModel]] = [RespondDecision]
    for tool in tools:
        variants.append(
            create_model(
                _variant_name(tool.name),
                __doc__=tool.description,
                action=(Literal[tool.name], ...),
                parameters=(tool.parameters, ...),
            )
        )
    decision_type = Annotated[Union[tuple(variants)], Field(discriminator="action")]
    return create_model("AgentDecision", decision=(decision_type, ...))


class ToolRegistry:
    """Fixed, uniquely named tool set with its decision type built once at construction."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name == RESPOND_ACTION:
                raise ValueError(f"Tool name {RESPOND_ACTION!r} is reserved")
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name!r}")
            self._tools[tool.name] = tool
        self._decision_model = build_decision_model(self._tools.values()) if self._tools else None

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    @property
    def decision_model(self) -> type[BaseModel] | None:
        return self._decision_model
