from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class EventEmitter(Protocol):
    def emit(self, source: str, event_type: str, payload: dict[str, Any]) -> None: ...


class LoggingEventEmitter:
    """Writes each event as one log line.

    Records inherit the ``workflow`` binding of the running context, so per-workflow
    file sinks pick up the events of every agent working for that workflow.
    """

    def __init__(self, level: str = "DEBUG"):
        self._level = level

    def emit(self, source: str, event_type: str, payload: dict[str, Any]) -> None:
        logger.bind(source=source, event=event_type).log(
            self._level,
            f"[{source}] {event_type} {json.dumps(payload, ensure_ascii=False, default=str)}",
        )


class NullEventEmitter:
    def emit(self, source: str, event_type: str, payload: dict[str, Any]) -> None:
        return None
