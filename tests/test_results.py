from __future__ import annotations

from soccer_trainer.cognitive_core import TrialOutcome, TrialRecord
from soccer_trainer.results import (
    TierBand,
    TierMetric,
    TierPolicy,
    accuracy_tiers,
    summarize,
)

LATENCY_TIERS = TierPolicy(
    metric=TierMetric.MEAN_LATENCY,
    bands=(TierBand("fast", 200.0), TierBand("ok", 300.0)),
    fallback="slow",
)

ACCURACY_TIERS = accuracy_tiers(elite="elite", solid="solid", fallback="practice")


def _rec(i: int, *, correct: bool, latency: float | None, delta: int = 0, streak: int = 0) -> TrialRecord:
    return TrialRecord(
        index=i,
        trial=i,
        outcome=TrialOutcome(
            response=None if latency is None else "x",
            latency_ms=latency,
            correct=correct,
            score_delta=delta,
            streak=streak,
        ),
        presented_at_ms=float(i) * 1000.0,
    )


def test_all_correct() -> None:
    log = [_rec(0, correct=True, latency=150.0, delta=10, streak=1), _rec(1, correct=True, latency=250.0, delta=10, streak=2)]
    s = summarize(log, tiers=LATENCY_TIERS)
    assert s.total == 2
    assert s.correct == 2
    assert s.accuracy_pct == 100.0
    assert s.mean_latency_ms == 200.0
    assert s.best_latency_ms == 150.0
    assert s.worst_latency_ms == 250.0
    assert s.score == 20
    assert s.best_streak == 2
    assert s.tier == "ok"  # 200 is not < 200


def test_all_timeouts_have_no_latency_stats() -> None:
    log = [_rec(i, correct=False, latency=None, delta=-5) for i in range(4)]
    s = summarize(log, tiers=LATENCY_TIERS)
    assert s.accuracy_pct == 0.0
    assert s.mean_latency_ms is None
    assert s.best_latency_ms is None
    assert s.worst_latency_ms is None
    assert s.score == -20
    # A latency tier cannot apply without a mean.
    assert s.tier == "slow"


def test_latency_stats_skip_incorrect_trials() -> None:
    log = [
        _rec(0, correct=True, latency=180.0),
        _rec(1, correct=False, latency=420.0),
        _rec(2, correct=False, latency=None),
    ]
    s = summarize(log, tiers=LATENCY_TIERS)
    assert s.mean_latency_ms == 180.0
    assert s.worst_latency_ms == 180.0
    assert s.tier == "fast"


def test_accuracy_tier_boundaries() -> None:
    def tier_for(correct: int, total: int = 10) -> str:
        log = [_rec(i, correct=i < correct, latency=300.0) for i in range(total)]
        return summarize(log, tiers=ACCURACY_TIERS).tier

    assert tier_for(8) == "elite"
    assert tier_for(7) == "solid"
    assert tier_for(6) == "solid"
    assert tier_for(5) == "practice"


def test_consistency_band_is_optional() -> None:
    log = [_rec(0, correct=True, latency=100.0)]
    assert summarize(log, tiers=LATENCY_TIERS).consistency is None
    consistency = TierPolicy(metric=TierMetric.ACCURACY, bands=(TierBand("Excellent", 90.0),), fallback="Needs work")
    assert summarize(log, tiers=LATENCY_TIERS, consistency=consistency).consistency == "Excellent"


def test_score_override_and_log_is_not_mutated() -> None:
    log = [_rec(0, correct=False, latency=None, delta=-5), _rec(1, correct=True, latency=200.0, delta=10)]
    before = list(log)
    s = summarize(log, tiers=ACCURACY_TIERS, score=10)
    assert s.score == 10
    assert log == before


def test_empty_log() -> None:
    s = summarize([], tiers=ACCURACY_TIERS)
    assert s.total == 0
    assert s.accuracy_pct == 0.0
    assert s.mean_latency_ms is None
    assert s.best_streak == 0
    assert s.tier == "practice"
