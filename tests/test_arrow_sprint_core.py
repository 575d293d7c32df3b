from __future__ import annotations

from dataclasses import dataclass

import pytest

from soccer_trainer.arrow_sprint import (
    ArrowSprintConfig,
    ArrowSprintGenerator,
    ArrowSprintRules,
    ArrowSprintScorer,
    ArrowTrial,
    Direction,
    build_arrow_sprint_session,
)
from soccer_trainer.cognitive_core import GamePhase


@dataclass
class FakeClock:
    t: float = 0.0

    def now_ms(self) -> float:
        return self.t

    def advance(self, dt_ms: float) -> None:
        self.t += float(dt_ms)


def _fixed_delay_config(**overrides: object) -> ArrowSprintConfig:
    base: dict[str, object] = {
        "stimulus_delay_min_ms": 1000.0,
        "stimulus_delay_max_ms": 1000.0,
        "countdown_ticks": 1,
    }
    base.update(overrides)
    return ArrowSprintConfig(**base)  # type: ignore[arg-type]


def _open_first_window(clock: FakeClock, engine) -> None:
    engine.start()
    clock.advance(1000.0)
    engine.update()  # countdown -> stimulus_pending
    clock.advance(1000.0)
    engine.update()  # stimulus_pending -> response_open
    assert engine.phase is GamePhase.RESPONSE_OPEN


def test_generator_determinism_same_seed_same_sequence() -> None:
    g1 = ArrowSprintGenerator(seed=2468)
    g2 = ArrowSprintGenerator(seed=2468)
    assert [g1.next_trial() for _ in range(30)] == [g2.next_trial() for _ in range(30)]


def test_generator_draws_every_direction_and_allows_repeats() -> None:
    gen = ArrowSprintGenerator(seed=11)
    seq = [gen.next_trial().direction for _ in range(200)]
    assert set(seq) == set(Direction)
    assert any(a == b for a, b in zip(seq, seq[1:]))


def test_matching_response_without_penalties_keeps_elapsed_latency() -> None:
    scorer = ArrowSprintScorer()
    out = scorer.evaluate(trial=ArrowTrial(Direction.UP), response=Direction.UP, elapsed_ms=180.0)
    assert out.correct is True
    assert out.latency_ms == 180.0
    assert out.penalty_ms == 0.0


def test_wrong_direction_adds_penalty() -> None:
    scorer = ArrowSprintScorer()
    out = scorer.evaluate(trial=ArrowTrial(Direction.DOWN), response=Direction.LEFT, elapsed_ms=220.0)
    assert out.correct is False
    assert out.latency_ms == 420.0


def test_premature_and_wrong_direction_penalties_are_additive() -> None:
    scorer = ArrowSprintScorer()
    early_right = scorer.evaluate(
        trial=ArrowTrial(Direction.UP), response=Direction.UP, elapsed_ms=300.0, is_premature=True
    )
    assert early_right.correct is False
    assert early_right.latency_ms == 600.0

    early_wrong = scorer.evaluate(
        trial=ArrowTrial(Direction.UP), response=Direction.RIGHT, elapsed_ms=300.0, is_premature=True
    )
    assert early_wrong.correct is False
    assert early_wrong.latency_ms == 800.0
    assert early_wrong.premature is True


def test_timeout_has_no_latency() -> None:
    out = ArrowSprintScorer().evaluate(trial=ArrowTrial(Direction.UP), response=None, elapsed_ms=2000.0)
    assert out.correct is False
    assert out.latency_ms is None
    assert out.response is None


def test_accepted_response_cancels_the_window_timeout() -> None:
    clock = FakeClock()
    engine = build_arrow_sprint_session(
        clock=clock, seed=5, config=_fixed_delay_config(feedback_ms=5000.0, total_trials=2)
    )
    _open_first_window(clock, engine)
    direction = engine.snapshot().stimulus.direction

    clock.advance(100.0)
    assert engine.user_input(direction) is True
    engine.update()
    assert engine.phase is GamePhase.FEEDBACK

    clock.advance(3000.0)  # well past the 2000 ms window
    engine.update()
    assert engine.phase is GamePhase.FEEDBACK
    records = engine.events()
    assert len(records) == 1
    assert records[0].outcome.correct is True
    assert records[0].outcome.latency_ms == 100.0


def test_window_expiry_records_a_timeout_and_late_input_is_discarded() -> None:
    clock = FakeClock()
    engine = build_arrow_sprint_session(clock=clock, seed=5, config=_fixed_delay_config(total_trials=2))
    _open_first_window(clock, engine)

    clock.advance(2000.0)
    engine.update()
    assert engine.phase is GamePhase.FEEDBACK

    engine.user_input(Direction.UP)
    engine.update()

    records = engine.events()
    assert len(records) == 1
    assert records[0].outcome.response is None
    assert records[0].outcome.latency_ms is None
    assert engine.score == -5


def test_expiry_and_input_in_one_frame_are_serialized_by_time() -> None:
    clock = FakeClock()
    engine = build_arrow_sprint_session(clock=clock, seed=5, config=_fixed_delay_config(total_trials=2))
    _open_first_window(clock, engine)
    opened_at = clock.t
    direction = engine.snapshot().stimulus.direction

    # The input happened just before the window closed, but the frame ran later.
    clock.advance(2100.0)
    engine.user_input(direction, timestamp_ms=opened_at + 1999.0)
    engine.update()

    records = engine.events()
    assert len(records) == 1
    assert records[0].outcome.correct is True
    assert records[0].outcome.latency_ms == 1999.0


def test_invalid_configuration_is_rejected_at_construction() -> None:
    clock = FakeClock()
    with pytest.raises(ValueError):
        build_arrow_sprint_session(clock=clock, seed=1, config=ArrowSprintConfig(total_trials=0))
    with pytest.raises(ValueError):
        build_arrow_sprint_session(
            clock=clock,
            seed=1,
            config=ArrowSprintConfig(stimulus_delay_min_ms=1500.0, stimulus_delay_max_ms=800.0),
        )
    with pytest.raises(ValueError):
        build_arrow_sprint_session(clock=clock, seed=1, config=ArrowSprintConfig(response_window_ms=0.0))


def test_malformed_input_raises_before_queueing() -> None:
    clock = FakeClock()
    engine = build_arrow_sprint_session(clock=clock, seed=1)
    assert engine.user_input(Direction.UP) is False  # idle
    engine.start()
    with pytest.raises(ValueError):
        engine.user_input("sideways")
    assert engine.user_input("LEFT") is True


def test_stimulus_delay_is_drawn_from_the_configured_interval() -> None:
    clock = FakeClock()
    engine = build_arrow_sprint_session(
        clock=clock,
        seed=77,
        config=ArrowSprintConfig(countdown_ticks=1, stimulus_delay_min_ms=800.0, stimulus_delay_max_ms=1500.0),
    )
    engine.start()
    clock.advance(1000.0)
    engine.update()
    assert engine.phase is GamePhase.STIMULUS_PENDING

    clock.advance(799.0)
    engine.update()
    assert engine.phase is GamePhase.STIMULUS_PENDING

    clock.advance(701.0)
    engine.update()
    assert engine.phase is GamePhase.RESPONSE_OPEN


def test_rules_reject_a_trial_from_another_drill() -> None:
    rules = ArrowSprintRules(seed=1)
    with pytest.raises(TypeError):
        rules.evaluate(trial=object(), response=Direction.UP, elapsed_ms=100.0, is_premature=False, streak=0)
