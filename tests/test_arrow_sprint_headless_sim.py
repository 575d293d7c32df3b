from __future__ import annotations

from dataclasses import dataclass

from soccer_trainer.arrow_sprint import (
    ArrowSprintConfig,
    ArrowSprintGenerator,
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


def test_headless_arrow_sprint_sim_correct_wrong_and_premature() -> None:
    clock = FakeClock()
    seed = 97531
    cfg = ArrowSprintConfig(total_trials=3, stimulus_delay_min_ms=1000.0, stimulus_delay_max_ms=1000.0)
    engine = build_arrow_sprint_session(clock=clock, seed=seed, config=cfg)

    # Mirror the deterministic direction stream.
    gen = ArrowSprintGenerator(seed=seed)
    expected = [gen.next_trial().direction for _ in range(3)]

    assert engine.phase is GamePhase.IDLE
    assert engine.start() is True
    assert engine.start() is False
    snap = engine.snapshot()
    assert snap.phase is GamePhase.COUNTDOWN
    assert snap.countdown == 3

    clock.advance(1000.0)
    engine.update()
    assert engine.snapshot().countdown == 2

    clock.advance(2000.0)
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.STIMULUS_PENDING
    assert snap.stimulus is None  # the arrow stays hidden until the window opens
    assert snap.trial_number == 1

    # Trial 1: correct answer 180 ms after the arrow appears.
    clock.advance(1000.0)
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.RESPONSE_OPEN
    assert snap.stimulus.direction is expected[0]

    clock.advance(180.0)
    engine.user_input(expected[0])
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.FEEDBACK
    assert snap.last_outcome.correct is True
    assert snap.last_outcome.latency_ms == 180.0
    assert snap.prompt == "180ms"

    # Trial 2: wrong direction 220 ms in.
    clock.advance(400.0)
    engine.update()
    assert engine.phase is GamePhase.STIMULUS_PENDING
    clock.advance(1000.0)
    engine.update()
    assert engine.phase is GamePhase.RESPONSE_OPEN

    wrong = next(d for d in Direction if d is not expected[1])
    clock.advance(220.0)
    engine.user_input(wrong)
    engine.update()
    snap = engine.snapshot()
    assert snap.last_outcome.correct is False
    assert snap.last_outcome.latency_ms == 420.0
    assert snap.prompt.startswith("Wrong way!")

    # Trial 3: matching key, but pressed before the arrow.
    clock.advance(400.0)
    engine.update()
    assert engine.phase is GamePhase.STIMULUS_PENDING
    clock.advance(100.0)
    engine.user_input(expected[2])
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.FEEDBACK
    assert snap.last_outcome.premature is True
    assert snap.last_outcome.correct is False
    assert snap.last_outcome.latency_ms == 600.0

    clock.advance(400.0)
    engine.update()
    assert engine.phase is GamePhase.SUMMARY
    assert engine.can_exit() is True

    records = engine.events()
    assert [r.trial.direction for r in records] == expected
    assert records[0].presented_at_ms == 4000.0
    assert records[2].presented_at_ms is None

    summary = engine.summary()
    assert summary is not None
    assert summary.total == 3
    assert summary.correct == 1
    assert summary.mean_latency_ms == 180.0
    assert summary.score == 0
    assert summary.tier == "Pro reflexes"
    assert summary.consistency == "Needs work"

    # Input after the summary is refused.
    assert engine.user_input(Direction.UP) is False


def test_headless_arrow_sprint_restart_from_summary_replays_a_fresh_session() -> None:
    clock = FakeClock()
    cfg = ArrowSprintConfig(
        total_trials=1,
        countdown_ticks=0,
        stimulus_delay_min_ms=500.0,
        stimulus_delay_max_ms=500.0,
    )
    engine = build_arrow_sprint_session(clock=clock, seed=3, config=cfg)

    engine.start()
    assert engine.phase is GamePhase.STIMULUS_PENDING
    clock.advance(500.0)
    engine.update()
    clock.advance(2000.0)
    engine.update()
    clock.advance(400.0)
    engine.update()
    assert engine.phase is GamePhase.SUMMARY
    assert engine.score == -5

    assert engine.restart() is True
    assert engine.phase is GamePhase.STIMULUS_PENDING
    assert engine.score == 0
    assert engine.events() == []
    assert engine.summary() is None
