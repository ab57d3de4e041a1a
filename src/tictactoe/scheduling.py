"""Cancellable delayed callbacks used for the computer's "thinking" pause."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Protocol


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall: ...


class ThreadingScheduler:
    """Runs each callback on a daemon timer thread after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        timer = threading.Timer(max(0.0, delay), callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class ManualCall:
    due: float
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Headless scheduler: nothing runs until the clock is driven by hand.

    ``advance`` moves the clock forward and fires whatever fell due;
    ``run_pending`` fires everything still queued regardless of delay.
    """

    now: float = 0.0
    calls: List[ManualCall] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualCall:
        call = ManualCall(due=self.now + max(0.0, delay), callback=callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> List[ManualCall]:
        return [c for c in self.calls if not c.cancelled]

    def advance(self, seconds: float) -> int:
        self.now += seconds
        return self._fire(lambda call: call.due <= self.now)

    def run_pending(self) -> int:
        return self._fire(lambda call: True)

    def _fire(self, is_due: Callable[[ManualCall], bool]) -> int:
        fired = 0
        # Callbacks may schedule more calls; keep going until nothing is due
        while True:
            due = [c for c in self.calls if not c.cancelled and is_due(c)]
            if not due:
                return fired
            for call in due:
                self.calls.remove(call)
                if call.cancelled:
                    continue
                call.callback()
                fired += 1
