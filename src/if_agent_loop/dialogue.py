from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    tool_name: str | None = None
    tool_call_id: str | None = None

    @property
    def is_tool_call(self) -> bool:
        return self.role == "assistant" and self.tool_call_id is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_name is not None:
            out["tool_name"] = self.tool_name
        if self.tool_call_id is not None:
            out["tool_call_id"] = self.tool_call_id
        return out


def serialize_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if hasattr(content, "model_dump"):
        content = content.model_dump(mode="json")
    return json.dumps(content, ensure_ascii=False, sort_keys=True, default=str)


class BoundedDialogue:
    """Role-tagged message log holding at most ``limit`` messages.

    Appending past the limit evicts the oldest messages first. Non-string content
    is serialised to canonical JSON before it is stored.
    """

    def __init__(self, limit: int = 50):
        if limit <= 0:
            raise ValueError(f"Dialogue limit must be positive, got {limit}")
        self._limit = limit
        self._messages: deque[Message] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._messages)

    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def append(
        self,
        role: Role,
        content: Any,
        *,
        tool_name: str | None = None,
        tool_call_id: str | None = None,
    ) -> BoundedDialogue:
        self._messages.append(
            Message(
                role=role,
                content=serialize_content(content),
                tool_name=tool_name,
                tool_call_id=tool_call_id,
            )
        )
        return self

    def system(self, content: Any) -> BoundedDialogue:
        return self.append("system", content)

    def user(self, content: Any) -> BoundedDialogue:
        return self.append("user", content)

    def assistant(self, content: Any) -> BoundedDialogue:
        return self.append("assistant", content)

    def tool_call(self, tool_call_id: str, tool_name: str, parameters: Any) -> BoundedDialogue:
        return self.append("assistant", parameters, tool_name=tool_name, tool_call_id=tool_call_id)

    def tool(self, tool_call_id: str, tool_name: str, result: Any) -> BoundedDialogue:
        return self.append("tool", result, tool_name=tool_name, tool_call_id=tool_call_id)
