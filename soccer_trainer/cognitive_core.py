from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

T = TypeVar("T")


class GamePhase(StrEnum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    STIMULUS_PENDING = "stimulus_pending"
    RESPONSE_OPEN = "response_open"
    FEEDBACK = "feedback"
    SUMMARY = "summary"


@dataclass(frozen=True, slots=True)
class TrialOutcome:
    response: object | None  # None = no response (timeout)
    latency_ms: float | None  # None when the trial has no valid latency
    correct: bool
    score_delta: int
    streak: int = 0  # consecutive correct trials including this one
    premature: bool = False
    penalty_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class TrialRecord:
    index: int
    trial: object
    outcome: TrialOutcome
    presented_at_ms: float | None  # None if the stimulus was never shown


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def random(self) -> float:
        return self._rng.random()

    def shuffle(self, items: list[T]) -> None:
        self._rng.shuffle(items)


def next_streak(streak: int, *, correct: bool) -> int:
    return streak + 1 if correct else 0
