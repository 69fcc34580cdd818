"""Pattern rules applied to raw game output.

Termination phrases and the score/move counters are matched case-insensitively.
A counter that does not appear in a piece of text keeps its previous value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TERMINATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"you have died", re.IGNORECASE),
    re.compile(r"game over", re.IGNORECASE),
    re.compile(r"the end", re.IGNORECASE),
    re.compile(r"you have won", re.IGNORECASE),
    re.compile(r"thanks for playing", re.IGNORECASE),
)

SCORE_PATTERN = re.compile(r"Score:\s*(\d+)", re.IGNORECASE)
MOVES_PATTERN = re.compile(r"Moves:\s*(\d+)", re.IGNORECASE)


def is_game_over(text: str) -> bool:
    return any(pattern.search(text) for pattern in TERMINATION_PATTERNS)


def extract_score(text: str) -> int | None:
    match = SCORE_PATTERN.search(text)
    return int(match.group(1)) if match else None


def extract_moves(text: str) -> int | None:
    match = MOVES_PATTERN.search(text)
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class GameProgress:
    score: int = 0
    moves: int = 0

    def update(self, text: str) -> GameProgress:
        score = extract_score(text)
        moves = extract_moves(text)
        return GameProgress(
            score=self.score if score is None else score,
            moves=self.moves if moves is None else moves,
        )
