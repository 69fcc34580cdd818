from __future__ import annotations

import dataclasses
from typing import Any


def to_payload(value: Any, not_found: str) -> Any:
    """Render a state-method result for the dialogue. ``None`` becomes ``not_found``."""
    if value is None:
        return not_found
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [to_payload(item, not_found) for item in value]
    return value
