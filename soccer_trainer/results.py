from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .cognitive_core import TrialRecord


class TierMetric(StrEnum):
    MEAN_LATENCY = "mean_latency"  # band applies when mean latency < bound
    ACCURACY = "accuracy"  # band applies when accuracy percentage >= bound


@dataclass(frozen=True, slots=True)
class TierBand:
    label: str
    bound: float


@dataclass(frozen=True, slots=True)
class TierPolicy:
    """Ordered bands checked first to last; fallback when none applies."""

    metric: TierMetric
    bands: tuple[TierBand, ...]
    fallback: str

    def classify(self, *, accuracy_pct: float, mean_latency_ms: float | None) -> str:
        for band in self.bands:
            if self.metric is TierMetric.MEAN_LATENCY:
                if mean_latency_ms is not None and mean_latency_ms < band.bound:
                    return band.label
            elif accuracy_pct >= band.bound:
                return band.label
        return self.fallback


@dataclass(frozen=True, slots=True)
class SessionSummary:
    total: int
    correct: int
    accuracy_pct: float
    mean_latency_ms: float | None
    best_latency_ms: float | None
    worst_latency_ms: float | None
    score: int
    best_streak: int
    tier: str
    consistency: str | None = None


def summarize(
    records: Sequence[TrialRecord],
    *,
    tiers: TierPolicy,
    consistency: TierPolicy | None = None,
    score: int | None = None,
) -> SessionSummary:
    """Reduce a finished trial log to summary statistics.

    Latency statistics cover correct trials that carry a latency; trials
    without one are left out rather than counted as zero. ``score`` overrides
    the plain sum of deltas for games that clamp their running total.
    """

    total = len(records)
    correct = sum(1 for r in records if r.outcome.correct)
    accuracy_pct = 0.0 if total == 0 else (correct / total) * 100.0

    latencies = [
        float(r.outcome.latency_ms)
        for r in records
        if r.outcome.correct and r.outcome.latency_ms is not None
    ]
    mean_ms: float | None
    best_ms: float | None
    worst_ms: float | None
    if not latencies:
        mean_ms = None
        best_ms = None
        worst_ms = None
    else:
        mean_ms = sum(latencies) / len(latencies)
        best_ms = min(latencies)
        worst_ms = max(latencies)

    best_streak = max((r.outcome.streak for r in records), default=0)
    final_score = sum(r.outcome.score_delta for r in records) if score is None else int(score)

    return SessionSummary(
        total=total,
        correct=correct,
        accuracy_pct=accuracy_pct,
        mean_latency_ms=mean_ms,
        best_latency_ms=best_ms,
        worst_latency_ms=worst_ms,
        score=final_score,
        best_streak=best_streak,
        tier=tiers.classify(accuracy_pct=accuracy_pct, mean_latency_ms=mean_ms),
        consistency=(
            None
            if consistency is None
            else consistency.classify(accuracy_pct=accuracy_pct, mean_latency_ms=mean_ms)
        ),
    )


def accuracy_tiers(*, elite: str, solid: str, fallback: str) -> TierPolicy:
    """Accuracy bands used by the recall and decision drills (80% / 60%)."""

    return TierPolicy(
        metric=TierMetric.ACCURACY,
        bands=(TierBand(elite, 80.0), TierBand(solid, 60.0)),
        fallback=fallback,
    )
