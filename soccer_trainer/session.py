from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field, replace
from typing import ClassVar, Protocol

from .clock import Clock
from .cognitive_core import GamePhase, TrialOutcome, TrialRecord
from .results import SessionSummary, TierPolicy, summarize
from .scheduler import CooperativeScheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionTiming:
    total_trials: int
    countdown_ticks: int = 3
    countdown_tick_ms: float = 1000.0
    feedback_ms: float = 400.0


class GameRules(Protocol):
    """What a drill plugs into the engine: stimuli, timing and scoring."""

    title: str
    timing: SessionTiming
    tiers: TierPolicy
    consistency: TierPolicy | None
    clamp_score_at_zero: bool
    premature_ends_trial: bool
    premature_elapsed_ms: float

    def begin_session(self) -> None: ...
    def instructions(self) -> list[str]: ...
    def next_trial(self, *, trial_index: int, previous: object | None) -> object: ...
    def stimulus_delay_ms(self, *, trial_index: int, trial: object) -> float: ...
    def response_window_ms(self, *, trial_index: int, trial: object) -> float | None: ...
    def stimulus_visible(self, phase: GamePhase) -> bool: ...
    def normalize_input(self, value: object) -> object: ...
    def accept_input(self, *, trial: object, pending: object | None, value: object) -> tuple[object, bool]: ...
    def timeout_response(self, *, trial: object, pending: object | None) -> object | None: ...

    def evaluate(
        self,
        *,
        trial: object,
        response: object | None,
        elapsed_ms: float,
        is_premature: bool,
        streak: int,
    ) -> TrialOutcome: ...

    def prompt(self, *, phase: GamePhase, trial: object | None, outcome: TrialOutcome | None) -> str: ...


# Phase values. Exactly one is current; each carries only what its phase needs.


@dataclass(frozen=True, slots=True)
class Idle:
    kind: ClassVar[GamePhase] = GamePhase.IDLE


@dataclass(frozen=True, slots=True)
class Countdown:
    remaining: int
    kind: ClassVar[GamePhase] = GamePhase.COUNTDOWN


@dataclass(frozen=True, slots=True)
class StimulusPending:
    trial_index: int
    trial: object
    kind: ClassVar[GamePhase] = GamePhase.STIMULUS_PENDING


@dataclass(frozen=True, slots=True)
class ResponseOpen:
    trial_index: int
    trial: object
    opened_at_ms: float
    window_ms: float | None
    pending: object | None = None
    kind: ClassVar[GamePhase] = GamePhase.RESPONSE_OPEN


@dataclass(frozen=True, slots=True)
class Feedback:
    trial_index: int
    trial: object
    record: TrialRecord
    kind: ClassVar[GamePhase] = GamePhase.FEEDBACK


@dataclass(frozen=True, slots=True)
class Summary:
    summary: SessionSummary
    kind: ClassVar[GamePhase] = GamePhase.SUMMARY


PhaseState = Idle | Countdown | StimulusPending | ResponseOpen | Feedback | Summary


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the renderer (pure data)."""

    title: str
    phase: GamePhase
    prompt: str
    trial_number: int  # 1-based; 0 before the first trial
    total_trials: int
    stimulus: object | None  # the current trial, only while the player may see it
    pending: object | None
    score: int
    streak: int
    countdown: int | None
    time_remaining_ms: float | None
    phase_elapsed_ms: float
    last_outcome: TrialOutcome | None
    summary: SessionSummary | None


@dataclass(slots=True)
class _SessionState:
    phase: PhaseState = field(default_factory=Idle)
    phase_started_ms: float = 0.0
    generation: int = 0
    trial_index: int = 0
    score: int = 0
    streak: int = 0
    records: list[TrialRecord] = field(default_factory=list)
    timers: list[TimerHandle] = field(default_factory=list)


class ReactionSession:
    """Timed-phase engine: idle -> countdown -> trials -> summary.

    - Deterministic: trials come from the rules' seeded generators.
    - Time is entirely via the injected Clock; the host calls update() per frame.
    - Player input and timer expiry share one queue and are handled one at a time.
    - Every timer callback carries the generation it was scheduled under; a
      callback whose generation is no longer current does nothing.
    """

    def __init__(
        self,
        *,
        rules: GameRules,
        clock: Clock,
        seed: int,
        scheduler: CooperativeScheduler | None = None,
    ) -> None:
        timing = rules.timing
        if timing.total_trials <= 0:
            raise ValueError("total_trials must be > 0")
        if timing.countdown_ticks < 0:
            raise ValueError("countdown_ticks must be >= 0")
        if timing.countdown_tick_ms <= 0.0:
            raise ValueError("countdown_tick_ms must be > 0")
        if timing.feedback_ms < 0.0:
            raise ValueError("feedback_ms must be >= 0")

        self._rules = rules
        self._timing = timing
        self._clock = clock
        self._seed = int(seed)
        self._scheduler = scheduler or CooperativeScheduler(clock=clock)
        self._generations = itertools.count(1)

        self._state = _SessionState(phase_started_ms=self._clock.now_ms())

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def phase(self) -> GamePhase:
        return self._state.phase.kind

    @property
    def rules(self) -> GameRules:
        return self._rules

    @property
    def score(self) -> int:
        return self._state.score

    @property
    def streak(self) -> int:
        return self._state.streak

    def instructions(self) -> list[str]:
        return self._rules.instructions()

    def can_exit(self) -> bool:
        return isinstance(self._state.phase, (Idle, Summary))

    def events(self) -> list[TrialRecord]:
        return list(self._state.records)

    def summary(self) -> SessionSummary | None:
        phase = self._state.phase
        return phase.summary if isinstance(phase, Summary) else None

    # Host-facing operations

    def start(self) -> bool:
        if not isinstance(self._state.phase, Idle):
            return False
        self._rules.begin_session()
        logger.info(
            "%s: session started (seed=%d, trials=%d)",
            self._rules.title,
            self._seed,
            self._timing.total_trials,
        )

        ticks = self._timing.countdown_ticks
        if ticks == 0:
            self._enter_trial()
            return True

        gen = self._transition(Countdown(remaining=ticks))
        self._own(
            self._scheduler.tick(
                self._timing.countdown_tick_ms,
                lambda remaining: self._on_countdown_tick(gen, remaining),
                lambda: self._on_countdown_done(gen),
                ticks=ticks,
            )
        )
        return True

    def reset(self) -> None:
        """Tear down the current state (timers included) and go back to idle."""

        self._cancel_timers()
        self._state = _SessionState(
            phase_started_ms=self._scheduler.now_ms(),
            generation=next(self._generations),
        )

    def restart(self) -> bool:
        logger.info("%s: restart requested", self._rules.title)
        self.reset()
        return self.start()

    def user_input(self, value: object, timestamp_ms: float | None = None) -> bool:
        """Queue a player input. Returns False while idle or finished.

        Malformed values raise ValueError here, before anything is queued.
        """

        if isinstance(self._state.phase, (Idle, Summary)):
            logger.debug("input %r ignored in phase %s", value, self.phase.value)
            return False

        normalized = self._rules.normalize_input(value)
        at_ms = self._clock.now_ms() if timestamp_ms is None else float(timestamp_ms)
        state = self._state
        self._scheduler.post(lambda: self._on_input(state, normalized, at_ms), at_ms=at_ms)
        return True

    def update(self) -> None:
        self._scheduler.pump()

    def snapshot(self) -> SessionSnapshot:
        st = self._state
        phase = st.phase
        now = self._clock.now_ms()

        trial: object | None = None
        trial_number = 0
        pending: object | None = None
        time_remaining: float | None = None
        countdown: int | None = None
        last_outcome: TrialOutcome | None = None

        if isinstance(phase, Countdown):
            countdown = phase.remaining
        elif isinstance(phase, StimulusPending):
            trial = phase.trial
            trial_number = phase.trial_index + 1
        elif isinstance(phase, ResponseOpen):
            trial = phase.trial
            trial_number = phase.trial_index + 1
            pending = phase.pending
            if phase.window_ms is not None:
                time_remaining = max(0.0, phase.opened_at_ms + phase.window_ms - now)
        elif isinstance(phase, Feedback):
            trial = phase.trial
            trial_number = phase.trial_index + 1
            pending = phase.record.outcome.response
            last_outcome = phase.record.outcome
        elif isinstance(phase, Summary):
            trial_number = len(st.records)

        if last_outcome is None and st.records:
            last_outcome = st.records[-1].outcome

        visible = trial if trial is not None and self._rules.stimulus_visible(phase.kind) else None

        return SessionSnapshot(
            title=self._rules.title,
            phase=phase.kind,
            prompt=self._prompt_text(trial=trial),
            trial_number=trial_number,
            total_trials=self._timing.total_trials,
            stimulus=visible,
            pending=pending,
            score=st.score,
            streak=st.streak,
            countdown=countdown,
            time_remaining_ms=time_remaining,
            phase_elapsed_ms=max(0.0, now - st.phase_started_ms),
            last_outcome=last_outcome,
            summary=self.summary(),
        )

    # Transitions

    def _transition(self, phase: PhaseState) -> int:
        """Leave the current phase: cancel its timers, bump the generation."""

        self._cancel_timers()
        st = self._state
        st.phase = phase
        st.phase_started_ms = self._scheduler.now_ms()
        st.generation = next(self._generations)
        return st.generation

    def _enter_trial(self) -> None:
        st = self._state
        index = st.trial_index
        previous = st.records[-1].trial if st.records else None
        trial = self._rules.next_trial(trial_index=index, previous=previous)
        delay_ms = self._rules.stimulus_delay_ms(trial_index=index, trial=trial)

        gen = self._transition(StimulusPending(trial_index=index, trial=trial))
        self._own(self._scheduler.schedule(delay_ms, lambda: self._on_stimulus_due(gen)))

    def _open_window(self, phase: StimulusPending) -> None:
        window_ms = self._rules.response_window_ms(trial_index=phase.trial_index, trial=phase.trial)
        opened_at = self._scheduler.now_ms()
        gen = self._transition(
            ResponseOpen(
                trial_index=phase.trial_index,
                trial=phase.trial,
                opened_at_ms=opened_at,
                window_ms=window_ms,
            )
        )
        if window_ms is not None:
            self._own(self._scheduler.schedule(window_ms, lambda: self._on_window_expired(gen)))

    def _complete_trial(
        self,
        *,
        trial_index: int,
        trial: object,
        outcome: TrialOutcome,
        presented_at_ms: float | None,
    ) -> None:
        st = self._state
        record = TrialRecord(index=trial_index, trial=trial, outcome=outcome, presented_at_ms=presented_at_ms)
        st.records.append(record)
        st.trial_index += 1

        score = st.score + int(outcome.score_delta)
        if self._rules.clamp_score_at_zero:
            score = max(0, score)
        st.score = score
        st.streak = outcome.streak

        gen = self._transition(Feedback(trial_index=trial_index, trial=trial, record=record))
        self._own(self._scheduler.schedule(self._timing.feedback_ms, lambda: self._on_feedback_done(gen)))

    def _finish(self) -> None:
        st = self._state
        summary = summarize(
            tuple(st.records),
            tiers=self._rules.tiers,
            consistency=self._rules.consistency,
            score=st.score,
        )
        self._transition(Summary(summary=summary))
        logger.info(
            "%s: session complete (%d/%d correct, score=%d, tier=%s)",
            self._rules.title,
            summary.correct,
            summary.total,
            summary.score,
            summary.tier,
        )

    # Queue callbacks

    def _on_countdown_tick(self, gen: int, remaining: int) -> None:
        if self._is_stale(gen, "countdown tick"):
            return
        self._state.phase = Countdown(remaining=remaining)

    def _on_countdown_done(self, gen: int) -> None:
        if self._is_stale(gen, "countdown end"):
            return
        self._enter_trial()

    def _on_stimulus_due(self, gen: int) -> None:
        if self._is_stale(gen, "stimulus timer"):
            return
        phase = self._state.phase
        if not isinstance(phase, StimulusPending):
            raise RuntimeError(f"stimulus timer fired in phase {phase.kind.value}")
        self._open_window(phase)

    def _on_window_expired(self, gen: int) -> None:
        if self._is_stale(gen, "response window expiry"):
            return
        st = self._state
        phase = st.phase
        if not isinstance(phase, ResponseOpen) or phase.window_ms is None:
            raise RuntimeError(f"window expiry fired in phase {phase.kind.value}")

        response = self._rules.timeout_response(trial=phase.trial, pending=phase.pending)
        outcome = self._rules.evaluate(
            trial=phase.trial,
            response=response,
            elapsed_ms=phase.window_ms,
            is_premature=False,
            streak=st.streak,
        )
        self._complete_trial(
            trial_index=phase.trial_index,
            trial=phase.trial,
            outcome=outcome,
            presented_at_ms=phase.opened_at_ms,
        )

    def _on_feedback_done(self, gen: int) -> None:
        if self._is_stale(gen, "feedback timer"):
            return
        if self._state.trial_index >= self._timing.total_trials:
            self._finish()
        else:
            self._enter_trial()

    def _on_input(self, state: _SessionState, value: object, at_ms: float) -> None:
        if state is not self._state:
            logger.debug("input %r addressed to a torn-down session discarded", value)
            return

        phase = state.phase
        if isinstance(phase, StimulusPending):
            self._on_early_input(state, phase, value)
            return

        if isinstance(phase, ResponseOpen):
            if at_ms < phase.opened_at_ms:
                # Stamped before the stimulus appeared, dispatched after.
                self._on_early_input(state, phase, value)
                return
            pending, ready = self._rules.accept_input(trial=phase.trial, pending=phase.pending, value=value)
            if not ready:
                # Same phase, same timers: only the accumulator changes.
                state.phase = replace(phase, pending=pending)
                return
            outcome = self._rules.evaluate(
                trial=phase.trial,
                response=pending,
                elapsed_ms=at_ms - phase.opened_at_ms,
                is_premature=False,
                streak=state.streak,
            )
            self._complete_trial(
                trial_index=phase.trial_index,
                trial=phase.trial,
                outcome=outcome,
                presented_at_ms=phase.opened_at_ms,
            )
            return

        logger.debug("input %r discarded in phase %s", value, phase.kind.value)

    def _on_early_input(self, state: _SessionState, phase: StimulusPending | ResponseOpen, value: object) -> None:
        if not self._rules.premature_ends_trial:
            logger.debug("input %r before the stimulus discarded", value)
            return
        outcome = self._rules.evaluate(
            trial=phase.trial,
            response=value,
            elapsed_ms=self._rules.premature_elapsed_ms,
            is_premature=True,
            streak=state.streak,
        )
        self._complete_trial(
            trial_index=phase.trial_index,
            trial=phase.trial,
            outcome=outcome,
            presented_at_ms=None,
        )

    # Helpers

    def _is_stale(self, gen: int, what: str) -> bool:
        if gen == self._state.generation:
            return False
        logger.debug("stale %s (generation %d, current %d) ignored", what, gen, self._state.generation)
        return True

    def _own(self, handle: TimerHandle) -> None:
        self._state.timers.append(handle)

    def _cancel_timers(self) -> None:
        st = self._state
        for handle in st.timers:
            self._scheduler.cancel(handle)
        st.timers.clear()

    def _prompt_text(self, *, trial: object | None) -> str:
        st = self._state
        phase = st.phase
        if isinstance(phase, Idle):
            return "\n".join([*self._rules.instructions(), "", "Press Enter to start."])
        if isinstance(phase, Countdown):
            return f"{phase.remaining}\nGet ready..."
        if isinstance(phase, Summary):
            return _summary_text(phase.summary)
        outcome = phase.record.outcome if isinstance(phase, Feedback) else None
        return self._rules.prompt(phase=phase.kind, trial=trial, outcome=outcome)


def _summary_text(s: SessionSummary) -> str:
    mean = "n/a" if s.mean_latency_ms is None else f"{s.mean_latency_ms:.0f} ms"
    best = "n/a" if s.best_latency_ms is None else f"{s.best_latency_ms:.0f} ms"
    worst = "n/a" if s.worst_latency_ms is None else f"{s.worst_latency_ms:.0f} ms"
    lines = [
        "Training Complete!",
        "",
        f"Score:     {s.score}",
        f"Correct:   {s.correct}/{s.total}",
        f"Accuracy:  {s.accuracy_pct:.0f}%",
        f"Mean RT:   {mean}",
        f"Best:      {best}",
        f"Worst:     {worst}",
    ]
    if s.consistency is not None:
        lines.append(f"Consistency: {s.consistency}")
    lines += ["", s.tier, "", "Press Enter to train again."]
    return "\n".join(lines)
