from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .cognitive_core import GamePhase, SeededRng, TrialOutcome, next_streak
from .results import TierBand, TierMetric, TierPolicy
from .session import ReactionSession, SessionTiming


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


DIRECTION_GLYPHS: dict[Direction, str] = {
    Direction.UP: "↑",
    Direction.DOWN: "↓",
    Direction.LEFT: "←",
    Direction.RIGHT: "→",
}

ARROW_SPRINT_TIERS = TierPolicy(
    metric=TierMetric.MEAN_LATENCY,
    bands=(
        TierBand("Pro reflexes", 200.0),
        TierBand("First-team ready", 250.0),
        TierBand("Training needed", 300.0),
    ),
    fallback="Work on reaction drills",
)

ARROW_SPRINT_CONSISTENCY = TierPolicy(
    metric=TierMetric.ACCURACY,
    bands=(TierBand("Excellent", 90.0), TierBand("Good", 75.0)),
    fallback="Needs work",
)


@dataclass(frozen=True, slots=True)
class ArrowSprintConfig:
    total_trials: int = 20
    countdown_ticks: int = 3
    countdown_tick_ms: float = 1000.0
    # Closed interval the pre-stimulus delay is drawn from, per trial.
    stimulus_delay_min_ms: float = 800.0
    stimulus_delay_max_ms: float = 1500.0
    response_window_ms: float = 2000.0
    feedback_ms: float = 400.0

    wrong_direction_penalty_ms: float = 200.0
    premature_penalty_ms: float = 300.0
    premature_elapsed_ms: float = 300.0

    correct_points: int = 10
    miss_points: int = -5

    tiers: TierPolicy = ARROW_SPRINT_TIERS
    consistency: TierPolicy = ARROW_SPRINT_CONSISTENCY


@dataclass(frozen=True, slots=True)
class ArrowTrial:
    direction: Direction


class ArrowSprintGenerator:
    """Independent uniform draws; repeats are allowed."""

    _DIRECTIONS: tuple[Direction, ...] = tuple(Direction)

    def __init__(self, *, seed: int) -> None:
        self._rng = SeededRng(seed)

    def next_trial(self, *, previous: ArrowTrial | None = None) -> ArrowTrial:
        _ = previous
        return ArrowTrial(direction=self._rng.choice(self._DIRECTIONS))


class ArrowSprintScorer:
    """Latency plus additive penalties: wrong direction, premature press."""

    def __init__(
        self,
        *,
        wrong_direction_penalty_ms: float = 200.0,
        premature_penalty_ms: float = 300.0,
        correct_points: int = 10,
        miss_points: int = -5,
    ) -> None:
        self._wrong_penalty = float(wrong_direction_penalty_ms)
        self._premature_penalty = float(premature_penalty_ms)
        self._correct_points = int(correct_points)
        self._miss_points = int(miss_points)

    def evaluate(
        self,
        *,
        trial: ArrowTrial,
        response: Direction | None,
        elapsed_ms: float,
        is_premature: bool = False,
        streak: int = 0,
    ) -> TrialOutcome:
        if response is None:
            return TrialOutcome(
                response=None,
                latency_ms=None,
                correct=False,
                score_delta=self._miss_points,
                streak=0,
            )

        penalty = 0.0
        if response != trial.direction:
            penalty += self._wrong_penalty
        if is_premature:
            penalty += self._premature_penalty

        correct = response == trial.direction and not is_premature
        return TrialOutcome(
            response=response,
            latency_ms=float(elapsed_ms) + penalty,
            correct=correct,
            score_delta=self._correct_points if correct else self._miss_points,
            streak=next_streak(streak, correct=correct),
            premature=bool(is_premature),
            penalty_ms=penalty,
        )


class ArrowSprintRules:
    title = "Arrow Sprint"
    clamp_score_at_zero = False
    premature_ends_trial = True

    def __init__(self, *, seed: int, config: ArrowSprintConfig | None = None) -> None:
        cfg = config or ArrowSprintConfig()
        if cfg.stimulus_delay_min_ms < 0.0:
            raise ValueError("stimulus_delay_min_ms must be >= 0")
        if cfg.stimulus_delay_max_ms < cfg.stimulus_delay_min_ms:
            raise ValueError("stimulus_delay_max_ms must be >= stimulus_delay_min_ms")
        if cfg.response_window_ms <= 0.0:
            raise ValueError("response_window_ms must be > 0")
        if cfg.wrong_direction_penalty_ms < 0.0 or cfg.premature_penalty_ms < 0.0:
            raise ValueError("penalties must be >= 0")
        if cfg.premature_elapsed_ms < 0.0:
            raise ValueError("premature_elapsed_ms must be >= 0")

        self._cfg = cfg
        self.timing = SessionTiming(
            total_trials=cfg.total_trials,
            countdown_ticks=cfg.countdown_ticks,
            countdown_tick_ms=cfg.countdown_tick_ms,
            feedback_ms=cfg.feedback_ms,
        )
        self.tiers = cfg.tiers
        self.consistency: TierPolicy | None = cfg.consistency
        self.premature_elapsed_ms = cfg.premature_elapsed_ms

        self._gen = ArrowSprintGenerator(seed=seed)
        # Separate stream so delays never shift the direction sequence.
        self._delay_rng = SeededRng(int(seed) ^ 0x5EED)
        self._scorer = ArrowSprintScorer(
            wrong_direction_penalty_ms=cfg.wrong_direction_penalty_ms,
            premature_penalty_ms=cfg.premature_penalty_ms,
            correct_points=cfg.correct_points,
            miss_points=cfg.miss_points,
        )

    def begin_session(self) -> None:
        pass

    def instructions(self) -> list[str]:
        return [
            "Arrow Sprint",
            "",
            "An arrow will appear on screen.",
            "Press the matching arrow key as fast as possible.",
            f"Complete {self._cfg.total_trials} arrows.",
            "",
            "Penalties:",
            f"- Wrong direction: +{self._cfg.wrong_direction_penalty_ms:.0f}ms",
            f"- Pressing too early: +{self._cfg.premature_penalty_ms:.0f}ms",
        ]

    def next_trial(self, *, trial_index: int, previous: object | None) -> ArrowTrial:
        _ = trial_index
        return self._gen.next_trial(previous=previous if isinstance(previous, ArrowTrial) else None)

    def stimulus_delay_ms(self, *, trial_index: int, trial: object) -> float:
        return self._delay_rng.uniform(self._cfg.stimulus_delay_min_ms, self._cfg.stimulus_delay_max_ms)

    def response_window_ms(self, *, trial_index: int, trial: object) -> float | None:
        return self._cfg.response_window_ms

    def stimulus_visible(self, phase: GamePhase) -> bool:
        return phase in (GamePhase.RESPONSE_OPEN, GamePhase.FEEDBACK)

    def normalize_input(self, value: object) -> Direction:
        if isinstance(value, Direction):
            return value
        try:
            return Direction(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"not a direction: {value!r}") from None

    def accept_input(self, *, trial: object, pending: object | None, value: object) -> tuple[object, bool]:
        return value, True

    def timeout_response(self, *, trial: object, pending: object | None) -> None:
        return None

    def evaluate(
        self,
        *,
        trial: object,
        response: object | None,
        elapsed_ms: float,
        is_premature: bool,
        streak: int,
    ) -> TrialOutcome:
        if not isinstance(trial, ArrowTrial):
            raise TypeError(f"expected ArrowTrial, got {type(trial).__name__}")
        return self._scorer.evaluate(
            trial=trial,
            response=None if response is None else self.normalize_input(response),
            elapsed_ms=elapsed_ms,
            is_premature=is_premature,
            streak=streak,
        )

    def prompt(self, *, phase: GamePhase, trial: object | None, outcome: TrialOutcome | None) -> str:
        if phase is GamePhase.STIMULUS_PENDING:
            return "Wait for it..."
        if phase is GamePhase.RESPONSE_OPEN and isinstance(trial, ArrowTrial):
            return DIRECTION_GLYPHS[trial.direction]
        if outcome is None:
            return ""
        if outcome.response is None:
            return "Too slow!"
        if outcome.premature:
            return f"Too early! {outcome.latency_ms:.0f}ms"
        if not outcome.correct:
            return f"Wrong way! {outcome.latency_ms:.0f}ms"
        return f"{outcome.latency_ms:.0f}ms"


def build_arrow_sprint_session(
    *,
    clock: Clock,
    seed: int,
    config: ArrowSprintConfig | None = None,
) -> ReactionSession:
    return ReactionSession(
        rules=ArrowSprintRules(seed=seed, config=config),
        clock=clock,
        seed=seed,
    )
