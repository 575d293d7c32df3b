from __future__ import annotations

from dataclasses import dataclass

from soccer_trainer.cognitive_core import GamePhase
from soccer_trainer.scenarios import DEFAULT_CATALOG, Action
from soccer_trainer.split_second_striker import ScenarioDeck, StrikerConfig, build_striker_session


@dataclass
class FakeClock:
    t: float = 0.0

    def now_ms(self) -> float:
        return self.t

    def advance(self, dt_ms: float) -> None:
        self.t += float(dt_ms)


def _other(action: Action) -> Action:
    return Action.PASS if action is Action.SHOOT else Action.SHOOT


def test_headless_striker_sim_streak_timeout_and_wrong_call() -> None:
    clock = FakeClock()
    seed = 8642
    engine = build_striker_session(clock=clock, seed=seed, config=StrikerConfig(total_trials=5))

    mirror = ScenarioDeck(catalog=DEFAULT_CATALOG, seed=seed)
    order = mirror.shuffle()
    answers = [DEFAULT_CATALOG[i].correct_action for i in order]

    assert engine.start() is True
    # No countdown: the first scenario opens on the next frame.
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.RESPONSE_OPEN
    assert snap.stimulus.scenario_index == order[0]
    assert snap.time_remaining_ms == 1200.0

    expected_scores = []
    for i, latency in enumerate((300.0, 200.0, 400.0)):
        clock.advance(latency)
        engine.user_input(answers[i])
        engine.update()
        snap = engine.snapshot()
        assert snap.phase is GamePhase.FEEDBACK
        assert snap.last_outcome.correct is True
        assert snap.last_outcome.latency_ms == latency
        expected_scores.append(snap.score)
        clock.advance(1500.0)
        engine.update()
        assert engine.phase is GamePhase.RESPONSE_OPEN

    assert expected_scores == [10, 20, 35]
    assert engine.streak == 3

    # Fourth scenario: no answer in time.
    clock.advance(1200.0)
    engine.update()
    snap = engine.snapshot()
    assert snap.phase is GamePhase.FEEDBACK
    assert snap.prompt.startswith("Too slow!")
    assert snap.score == 30
    assert snap.streak == 0

    # Fifth scenario: wrong call, answered with the keyboard shortcut.
    clock.advance(1500.0)
    engine.update()
    clock.advance(100.0)
    engine.user_input(_other(answers[4]).value[0])
    engine.update()
    snap = engine.snapshot()
    assert snap.last_outcome.correct is False
    assert snap.score == 30

    clock.advance(1500.0)
    engine.update()
    assert engine.phase is GamePhase.SUMMARY

    assert [r.trial.scenario_index for r in engine.events()] == list(order[:5])
    summary = engine.summary()
    assert summary is not None
    assert summary.correct == 3
    assert summary.accuracy_pct == 60.0
    assert summary.mean_latency_ms == 300.0
    assert summary.best_latency_ms == 200.0
    assert summary.worst_latency_ms == 400.0
    assert summary.best_streak == 3
    assert summary.score == 30
    assert summary.tier == "Solid decisions! Keep training your tactical awareness."


def test_headless_striker_score_never_drops_below_zero() -> None:
    clock = FakeClock()
    seed = 77
    engine = build_striker_session(clock=clock, seed=seed, config=StrikerConfig(total_trials=2))
    mirror = ScenarioDeck(catalog=DEFAULT_CATALOG, seed=seed)
    order = mirror.shuffle()

    engine.start()
    engine.update()
    clock.advance(1200.0)
    engine.update()
    assert engine.score == 0

    clock.advance(1500.0)
    engine.update()
    clock.advance(250.0)
    engine.user_input(DEFAULT_CATALOG[order[1]].correct_action)
    engine.update()
    assert engine.score == 10

    clock.advance(1500.0)
    engine.update()
    summary = engine.summary()
    assert summary is not None
    assert summary.score == 10
    assert summary.correct == 1
