from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from .clock import Clock

logger = logging.getLogger(__name__)


class TimerState(StrEnum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass(slots=True, eq=False)
class TimerHandle:
    """Cancel handle for a scheduled callback or a queued input event."""

    handle_id: int
    due_ms: float
    period_ms: float | None = None
    remaining_ticks: int = 1
    state: TimerState = TimerState.PENDING

    @property
    def active(self) -> bool:
        return self.state is TimerState.PENDING


@dataclass(order=True, slots=True)
class _Entry:
    at_ms: float
    seq: int
    handle: TimerHandle = field(compare=False)
    callback: Callable[[], None] = field(compare=False)


class CooperativeScheduler:
    """Single queue for timer expiries and input events.

    Nothing here blocks. The host calls pump() once per frame; everything due
    by then is dispatched one entry at a time in (time, arrival) order.
    While an entry is being dispatched, now_ms() reports that entry's time, so
    timers scheduled from inside a callback are measured from the moment the
    triggering event happened rather than from when the frame got around to it.
    """

    def __init__(self, *, clock: Clock) -> None:
        self._clock = clock
        self._queue: list[_Entry] = []
        self._seq = itertools.count()
        self._ids = itertools.count(1)
        self._dispatching_at_ms: float | None = None
        self._last_dispatch_ms: float | None = None

    def now_ms(self) -> float:
        if self._dispatching_at_ms is not None:
            return self._dispatching_at_ms
        return self._clock.now_ms()

    @property
    def pending(self) -> int:
        return sum(1 for e in self._queue if e.handle.active)

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if delay_ms < 0.0:
            raise ValueError("delay_ms must be >= 0")
        handle = TimerHandle(handle_id=next(self._ids), due_ms=self.now_ms() + float(delay_ms))
        self._push(handle, callback)
        return handle

    def tick(
        self,
        period_ms: float,
        on_tick: Callable[[int], None],
        on_complete: Callable[[], None],
        *,
        ticks: int,
    ) -> TimerHandle:
        """Countdown timer: on_tick(remaining) after each period, on_complete() after the last."""

        if period_ms <= 0.0:
            raise ValueError("period_ms must be > 0")
        if ticks < 1:
            raise ValueError("ticks must be >= 1")

        handle = TimerHandle(
            handle_id=next(self._ids),
            due_ms=self.now_ms() + float(period_ms),
            period_ms=float(period_ms),
            remaining_ticks=int(ticks),
        )

        def fire() -> None:
            if handle.remaining_ticks > 0:
                on_tick(handle.remaining_ticks)
            else:
                on_complete()

        self._push(handle, fire)
        return handle

    def post(self, callback: Callable[[], None], *, at_ms: float | None = None) -> TimerHandle:
        """Queue an event (typically player input) stamped with the time it happened."""

        at = self.now_ms() if at_ms is None else float(at_ms)
        handle = TimerHandle(handle_id=next(self._ids), due_ms=at)
        self._push(handle, callback)
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        # Cancelling a fired or already-cancelled handle is a no-op.
        if handle is None or not handle.active:
            return
        handle.state = TimerState.CANCELLED

    def cancel_all(self) -> None:
        for entry in self._queue:
            self.cancel(entry.handle)
        self._queue.clear()

    def pump(self) -> int:
        """Dispatch everything due at the current clock time. Returns the dispatch count."""

        now = self._clock.now_ms()
        dispatched = 0
        while self._queue and self._queue[0].at_ms <= now:
            entry = heapq.heappop(self._queue)
            handle = entry.handle
            if not handle.active:
                continue

            at = entry.at_ms
            if self._last_dispatch_ms is not None and at < self._last_dispatch_ms:
                at = self._last_dispatch_ms
            self._last_dispatch_ms = at

            if handle.period_ms is not None:
                handle.remaining_ticks -= 1
            if handle.period_ms is None or handle.remaining_ticks <= 0:
                handle.state = TimerState.FIRED

            self._dispatching_at_ms = at
            try:
                entry.callback()
            finally:
                self._dispatching_at_ms = None
            dispatched += 1

            if handle.active and handle.period_ms is not None:
                handle.due_ms = entry.at_ms + handle.period_ms
                self._push(handle, entry.callback)

        if dispatched:
            logger.debug("dispatched %d event(s) at %.1f ms", dispatched, now)
        return dispatched

    def _push(self, handle: TimerHandle, callback: Callable[[], None]) -> None:
        heapq.heappush(self._queue, _Entry(at_ms=handle.due_ms, seq=next(self._seq), handle=handle, callback=callback))
