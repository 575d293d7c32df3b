from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .clock import Clock
from .cognitive_core import GamePhase, SeededRng, TrialOutcome, next_streak
from .results import TierPolicy, accuracy_tiers
from .session import ReactionSession, SessionTiming

GRID_CELLS = 9  # 3x3, row-major


@dataclass(frozen=True, slots=True)
class DifficultyStep:
    first_trial: int  # 1-based trial number this step starts at
    targets: int
    recall_delay_ms: float


DEFAULT_SCHEDULE: tuple[DifficultyStep, ...] = (
    DifficultyStep(first_trial=1, targets=2, recall_delay_ms=1500.0),
    DifficultyStep(first_trial=4, targets=3, recall_delay_ms=1200.0),
    DifficultyStep(first_trial=7, targets=4, recall_delay_ms=1000.0),
)

SCAN_MASTER_TIERS = accuracy_tiers(
    elite="Elite scanning! Your field awareness is exceptional.",
    solid="Good work! Keep training to improve your vision.",
    fallback="Keep practicing! Scan more often in matches.",
)


@dataclass(frozen=True, slots=True)
class ScanMasterConfig:
    total_trials: int = 10
    countdown_ticks: int = 1
    countdown_tick_ms: float = 1000.0

    # One flash per interval, lit for flash_on_ms.
    flash_interval_ms: float = 600.0
    flash_on_ms: float = 300.0
    schedule: tuple[DifficultyStep, ...] = DEFAULT_SCHEDULE

    response_window_ms: float | None = 10_000.0
    feedback_ms: float = 1200.0

    correct_cell_points: int = 10
    wrong_cell_points: int = -5
    perfect_bonus: int = 20

    tiers: TierPolicy = SCAN_MASTER_TIERS


@dataclass(frozen=True, slots=True)
class ScanTrial:
    cells: tuple[int, ...]  # flash order; membership is what gets scored

    @property
    def target_set(self) -> frozenset[int]:
        return frozenset(self.cells)

    @property
    def target_count(self) -> int:
        return len(self.cells)


def difficulty_for(trial_number: int, schedule: tuple[DifficultyStep, ...]) -> DifficultyStep:
    """Last schedule step whose first_trial is <= trial_number (1-based)."""

    step = schedule[0]
    for candidate in schedule:
        if candidate.first_trial <= trial_number:
            step = candidate
    return step


def validate_schedule(schedule: tuple[DifficultyStep, ...], *, cells: int = GRID_CELLS) -> None:
    if not schedule:
        raise ValueError("schedule must not be empty")
    if schedule[0].first_trial != 1:
        raise ValueError("schedule must start at trial 1")
    last = 0
    for step in schedule:
        if step.first_trial <= last:
            raise ValueError("schedule steps must have increasing first_trial")
        last = step.first_trial
        if not (1 <= step.targets <= cells):
            raise ValueError(f"targets must be in [1, {cells}] (got {step.targets})")
        if step.recall_delay_ms < 0.0:
            raise ValueError("recall_delay_ms must be >= 0")


def flashing_cell(trial: ScanTrial, *, elapsed_ms: float, interval_ms: float, on_ms: float) -> int | None:
    """Cell lit at elapsed_ms into the stimulus phase, if any.

    Flash k (0-based) starts at (k + 1) * interval_ms and lasts on_ms.
    """

    if elapsed_ms < interval_ms:
        return None
    k = int(elapsed_ms // interval_ms) - 1
    if k >= trial.target_count:
        return None
    if elapsed_ms - (k + 1) * interval_ms >= on_ms:
        return None
    return trial.cells[k]


class ScanMasterGenerator:
    """Distinct cells by rejection sampling over a fixed universe."""

    def __init__(self, *, seed: int, cells: int = GRID_CELLS) -> None:
        self._rng = SeededRng(seed)
        self._cells = int(cells)

    def next_trial(self, *, targets: int, previous: ScanTrial | None = None) -> ScanTrial:
        _ = previous
        if not (1 <= targets <= self._cells):
            raise ValueError(f"targets must be in [1, {self._cells}] (got {targets})")

        picked: list[int] = []
        while len(picked) < targets:
            cell = self._rng.randint(0, self._cells - 1)
            if cell not in picked:
                picked.append(cell)
        return ScanTrial(cells=tuple(picked))


class ScanMasterScorer:
    """+10 per correct cell, -5 per wrong cell, +20 when the set matches exactly."""

    def __init__(
        self,
        *,
        cells: int = GRID_CELLS,
        correct_cell_points: int = 10,
        wrong_cell_points: int = -5,
        perfect_bonus: int = 20,
    ) -> None:
        self._cells = int(cells)
        self._correct_points = int(correct_cell_points)
        self._wrong_points = int(wrong_cell_points)
        self._bonus = int(perfect_bonus)

    def evaluate(
        self,
        *,
        trial: ScanTrial,
        response: Iterable[int] | None,
        elapsed_ms: float,
        is_premature: bool = False,
        streak: int = 0,
    ) -> TrialOutcome:
        _ = is_premature
        if trial.target_count == 0:
            raise ValueError("trial has no targets")

        selected = frozenset(int(c) for c in (response or ()))
        outside = sorted(c for c in selected if not (0 <= c < self._cells))
        if outside:
            raise ValueError(f"cells outside the grid: {outside}")

        targets = trial.target_set
        hits = len(selected & targets)
        misses = len(selected - targets)
        exact = selected == targets

        delta = hits * self._correct_points + misses * self._wrong_points
        if exact:
            delta += self._bonus

        return TrialOutcome(
            response=selected,
            latency_ms=float(elapsed_ms),
            correct=exact,
            score_delta=delta,
            streak=next_streak(streak, correct=exact),
        )


class ScanMasterRules:
    title = "Scan Master"
    clamp_score_at_zero = False
    premature_ends_trial = False
    premature_elapsed_ms = 0.0
    consistency: TierPolicy | None = None

    def __init__(self, *, seed: int, config: ScanMasterConfig | None = None) -> None:
        cfg = config or ScanMasterConfig()
        validate_schedule(cfg.schedule)
        if cfg.flash_interval_ms <= 0.0:
            raise ValueError("flash_interval_ms must be > 0")
        if not (0.0 < cfg.flash_on_ms <= cfg.flash_interval_ms):
            raise ValueError("flash_on_ms must be in (0, flash_interval_ms]")
        if cfg.response_window_ms is not None and cfg.response_window_ms <= 0.0:
            raise ValueError("response_window_ms must be > 0")

        self._cfg = cfg
        self.timing = SessionTiming(
            total_trials=cfg.total_trials,
            countdown_ticks=cfg.countdown_ticks,
            countdown_tick_ms=cfg.countdown_tick_ms,
            feedback_ms=cfg.feedback_ms,
        )
        self.tiers = cfg.tiers

        self._gen = ScanMasterGenerator(seed=seed)
        self._scorer = ScanMasterScorer(
            correct_cell_points=cfg.correct_cell_points,
            wrong_cell_points=cfg.wrong_cell_points,
            perfect_bonus=cfg.perfect_bonus,
        )

    @property
    def config(self) -> ScanMasterConfig:
        return self._cfg

    def begin_session(self) -> None:
        pass

    def instructions(self) -> list[str]:
        return [
            "Scan Master",
            "",
            "Watch the grid carefully.",
            "Squares will flash briefly; remember which ones.",
            "Then select every square that flashed.",
            "It gets harder as you progress!",
        ]

    def next_trial(self, *, trial_index: int, previous: object | None) -> ScanTrial:
        step = difficulty_for(trial_index + 1, self._cfg.schedule)
        return self._gen.next_trial(
            targets=step.targets,
            previous=previous if isinstance(previous, ScanTrial) else None,
        )

    def stimulus_delay_ms(self, *, trial_index: int, trial: object) -> float:
        # Flash sequence, one blank interval, then the recall delay.
        if not isinstance(trial, ScanTrial):
            raise TypeError(f"expected ScanTrial, got {type(trial).__name__}")
        step = difficulty_for(trial_index + 1, self._cfg.schedule)
        return (trial.target_count + 1) * self._cfg.flash_interval_ms + step.recall_delay_ms

    def response_window_ms(self, *, trial_index: int, trial: object) -> float | None:
        return self._cfg.response_window_ms

    def stimulus_visible(self, phase: GamePhase) -> bool:
        return phase in (GamePhase.STIMULUS_PENDING, GamePhase.FEEDBACK)

    def normalize_input(self, value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"not a grid cell: {value!r}")
        if not (0 <= value < GRID_CELLS):
            raise ValueError(f"cell {value} outside the grid")
        return int(value)

    def accept_input(self, *, trial: object, pending: object | None, value: object) -> tuple[object, bool]:
        # Clicking a selected cell again deselects it.
        if not isinstance(trial, ScanTrial):
            raise TypeError(f"expected ScanTrial, got {type(trial).__name__}")
        selected = set(pending) if isinstance(pending, frozenset) else set()
        if value in selected:
            selected.remove(value)
        else:
            selected.add(value)
        return frozenset(selected), len(selected) >= trial.target_count

    def timeout_response(self, *, trial: object, pending: object | None) -> frozenset[int]:
        return pending if isinstance(pending, frozenset) else frozenset()

    def evaluate(
        self,
        *,
        trial: object,
        response: object | None,
        elapsed_ms: float,
        is_premature: bool,
        streak: int,
    ) -> TrialOutcome:
        if not isinstance(trial, ScanTrial):
            raise TypeError(f"expected ScanTrial, got {type(trial).__name__}")
        cells = response if isinstance(response, frozenset) else None
        return self._scorer.evaluate(
            trial=trial,
            response=cells,
            elapsed_ms=elapsed_ms,
            is_premature=is_premature,
            streak=streak,
        )

    def prompt(self, *, phase: GamePhase, trial: object | None, outcome: TrialOutcome | None) -> str:
        if phase is GamePhase.STIMULUS_PENDING:
            return "Watch carefully!"
        if phase is GamePhase.RESPONSE_OPEN:
            return "Click the squares that flashed!"
        if outcome is None:
            return ""
        if outcome.correct:
            return f"Perfect! +{outcome.score_delta}"
        return f"Round score: {outcome.score_delta:+d}"


def build_scan_master_session(
    *,
    clock: Clock,
    seed: int,
    config: ScanMasterConfig | None = None,
) -> ReactionSession:
    return ReactionSession(
        rules=ScanMasterRules(seed=seed, config=config),
        clock=clock,
        seed=seed,
    )
