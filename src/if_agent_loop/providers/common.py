from __future__ import annotations

from collections.abc import Mapping, Sequence

from loguru import logger
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from if_agent_loop.dialogue import Message

MAX_ATTEMPTS = 5

_exponential = wait_exponential(multiplier=10, min=10, max=320)


def _on_retry(retry_state):
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.0f}s (attempt {attempt}/{MAX_ATTEMPTS})...")


def _wait_for_backend(retry_state) -> float:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        return max(0.0, float(retry_after))
    return _exponential(retry_state)


def default_retry_kwargs(exception_types: tuple[type[Exception], ...]) -> dict:
    return {
        "retry": retry_if_exception_type(exception_types),
        "wait": _wait_for_backend,
        "stop": stop_after_attempt(MAX_ATTEMPTS),
        "before_sleep": _on_retry,
        "reraise": True,
    }


def retry_after_seconds(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def paired_tool_call_ids(messages: Sequence[Message]) -> set[str]:
    """Ids whose tool result directly follows its assistant tool call in the window.

    Anything else (evicted call, interleaved messages, missing result) is sent as text.
    """
    paired: set[str] = set()
    for previous, current in zip(messages, messages[1:]):
        if (
            previous.is_tool_call
            and current.role == "tool"
            and current.tool_call_id == previous.tool_call_id
        ):
            paired.add(current.tool_call_id)
    return paired


def unpaired_as_text(msg: Message) -> str:
    if msg.role == "tool":
        return f"[{msg.tool_name} result] {msg.content}"
    return f"[{msg.tool_name} called with {msg.content}]"


def schema_name(schema: type) -> str:
    return getattr(schema, "__name__", "response")[:64]
