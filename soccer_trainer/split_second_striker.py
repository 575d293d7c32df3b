from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .clock import Clock
from .cognitive_core import GamePhase, SeededRng, TrialOutcome
from .results import TierPolicy, accuracy_tiers
from .scenarios import DEFAULT_CATALOG, Action, Scenario
from .session import ReactionSession, SessionTiming

STRIKER_TIERS = accuracy_tiers(
    elite="Elite decision-making! You read the game perfectly.",
    solid="Solid decisions! Keep training your tactical awareness.",
    fallback="Keep practicing! Watch more game film to improve.",
)


@dataclass(frozen=True, slots=True)
class StrikerConfig:
    total_trials: int | None = None  # None = the whole catalog
    countdown_ticks: int = 0
    countdown_tick_ms: float = 1000.0
    stimulus_delay_ms: float = 0.0
    response_window_ms: float = 1200.0
    feedback_ms: float = 1500.0

    correct_points: int = 10
    streak_bonus: int = 5
    streak_threshold: int = 3
    timeout_points: int = -5

    tiers: TierPolicy = STRIKER_TIERS


@dataclass(frozen=True, slots=True)
class StrikerTrial:
    scenario_index: int
    scenario: Scenario


class ScenarioDeck:
    """One random permutation of the catalog per session, dealt in order."""

    def __init__(self, *, catalog: Sequence[Scenario], seed: int) -> None:
        if not catalog:
            raise ValueError("scenario catalog must not be empty")
        self._catalog = tuple(catalog)
        self._rng = SeededRng(seed)
        self._order: tuple[int, ...] = ()
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._catalog)

    @property
    def order(self) -> tuple[int, ...]:
        return self._order

    def shuffle(self) -> tuple[int, ...]:
        order = list(range(len(self._catalog)))
        self._rng.shuffle(order)
        self._order = tuple(order)
        self._cursor = 0
        return self._order

    def next_trial(self, *, previous: StrikerTrial | None = None) -> StrikerTrial:
        _ = previous
        if not self._order:
            self.shuffle()
        if self._cursor >= len(self._order):
            raise IndexError("scenario deck exhausted")
        index = self._order[self._cursor]
        self._cursor += 1
        return StrikerTrial(scenario_index=index, scenario=self._catalog[index])


class StrikerScorer:
    """+10 per correct call, +5 more while the streak is at least three.

    A timeout costs 5 points; a wrong call scores nothing. Both reset the streak.
    """

    def __init__(
        self,
        *,
        correct_points: int = 10,
        streak_bonus: int = 5,
        streak_threshold: int = 3,
        timeout_points: int = -5,
    ) -> None:
        self._correct_points = int(correct_points)
        self._streak_bonus = int(streak_bonus)
        self._streak_threshold = int(streak_threshold)
        self._timeout_points = int(timeout_points)

    def evaluate(
        self,
        *,
        trial: StrikerTrial,
        response: Action | None,
        elapsed_ms: float,
        is_premature: bool = False,
        streak: int = 0,
    ) -> TrialOutcome:
        _ = is_premature
        if response is None:
            return TrialOutcome(
                response=None,
                latency_ms=None,
                correct=False,
                score_delta=self._timeout_points,
                streak=0,
            )

        if response == trial.scenario.correct_action:
            new_streak = streak + 1
            delta = self._correct_points
            if new_streak >= self._streak_threshold:
                delta += self._streak_bonus
            return TrialOutcome(
                response=response,
                latency_ms=float(elapsed_ms),
                correct=True,
                score_delta=delta,
                streak=new_streak,
            )

        return TrialOutcome(
            response=response,
            latency_ms=float(elapsed_ms),
            correct=False,
            score_delta=0,
            streak=0,
        )


class StrikerRules:
    title = "Split-Second Striker"
    clamp_score_at_zero = True
    premature_ends_trial = False
    premature_elapsed_ms = 0.0
    consistency: TierPolicy | None = None

    def __init__(
        self,
        *,
        seed: int,
        config: StrikerConfig | None = None,
        catalog: Sequence[Scenario] = DEFAULT_CATALOG,
    ) -> None:
        cfg = config or StrikerConfig()
        deck = ScenarioDeck(catalog=catalog, seed=seed)

        total = len(deck) if cfg.total_trials is None else int(cfg.total_trials)
        if total > len(deck):
            raise ValueError(f"total_trials ({total}) exceeds the scenario catalog ({len(deck)})")
        if cfg.stimulus_delay_ms < 0.0:
            raise ValueError("stimulus_delay_ms must be >= 0")
        if cfg.response_window_ms <= 0.0:
            raise ValueError("response_window_ms must be > 0")
        if cfg.streak_threshold < 1:
            raise ValueError("streak_threshold must be >= 1")

        self._cfg = cfg
        self._deck = deck
        self.timing = SessionTiming(
            total_trials=total,
            countdown_ticks=cfg.countdown_ticks,
            countdown_tick_ms=cfg.countdown_tick_ms,
            feedback_ms=cfg.feedback_ms,
        )
        self.tiers = cfg.tiers
        self._scorer = StrikerScorer(
            correct_points=cfg.correct_points,
            streak_bonus=cfg.streak_bonus,
            streak_threshold=cfg.streak_threshold,
            timeout_points=cfg.timeout_points,
        )

    @property
    def deck(self) -> ScenarioDeck:
        return self._deck

    @property
    def config(self) -> StrikerConfig:
        return self._cfg

    def begin_session(self) -> None:
        self._deck.shuffle()

    def instructions(self) -> list[str]:
        return [
            "Split-Second Striker",
            "",
            "You'll see tactical scenarios from the box.",
            "Green dot = You (with ball)",
            "Red dots = Defenders, Blue dots = Teammates",
            "Press S to SHOOT, P to PASS.",
            f"You have {self._cfg.response_window_ms / 1000.0:.1f} seconds to decide!",
        ]

    def next_trial(self, *, trial_index: int, previous: object | None) -> StrikerTrial:
        _ = trial_index
        return self._deck.next_trial(previous=previous if isinstance(previous, StrikerTrial) else None)

    def stimulus_delay_ms(self, *, trial_index: int, trial: object) -> float:
        return self._cfg.stimulus_delay_ms

    def response_window_ms(self, *, trial_index: int, trial: object) -> float | None:
        return self._cfg.response_window_ms

    def stimulus_visible(self, phase: GamePhase) -> bool:
        return phase in (GamePhase.RESPONSE_OPEN, GamePhase.FEEDBACK)

    def normalize_input(self, value: object) -> Action:
        if isinstance(value, Action):
            return value
        raw = str(value).strip().lower()
        shortcuts = {"s": Action.SHOOT, "p": Action.PASS}
        if raw in shortcuts:
            return shortcuts[raw]
        try:
            return Action(raw)
        except ValueError:
            raise ValueError(f"not an action: {value!r}") from None

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
        if not isinstance(trial, StrikerTrial):
            raise TypeError(f"expected StrikerTrial, got {type(trial).__name__}")
        return self._scorer.evaluate(
            trial=trial,
            response=None if response is None else self.normalize_input(response),
            elapsed_ms=elapsed_ms,
            is_premature=is_premature,
            streak=streak,
        )

    def prompt(self, *, phase: GamePhase, trial: object | None, outcome: TrialOutcome | None) -> str:
        if phase is GamePhase.STIMULUS_PENDING:
            return "Get ready..."
        if phase is GamePhase.RESPONSE_OPEN:
            return "S = Shoot    P = Pass"
        if outcome is None or not isinstance(trial, StrikerTrial):
            return ""
        if outcome.response is None:
            verdict = "Too slow!"
        elif outcome.correct:
            verdict = "Correct!"
        else:
            verdict = "Wrong choice!"
        return f"{verdict}\n{trial.scenario.reasoning}"


def build_striker_session(
    *,
    clock: Clock,
    seed: int,
    config: StrikerConfig | None = None,
    catalog: Sequence[Scenario] = DEFAULT_CATALOG,
) -> ReactionSession:
    return ReactionSession(
        rules=StrikerRules(seed=seed, config=config, catalog=catalog),
        clock=clock,
        seed=seed,
    )
