from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Callable, List


class ScheduledTurn:
    """Handle for one deferred callback; cancelling suppresses it for good."""

    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.delay_s = float(delay_s)
        self._callback = callback
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> bool:
        return not self._cancelled and not self._fired

    def cancel(self) -> bool:
        if not self.pending:
            return False
        self._cancelled = True
        return True

    def fire(self) -> bool:
        if not self.pending:
            return False
        self._fired = True
        self._callback()
        return True


class TurnScheduler(ABC):
    @abstractmethod
    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTurn:
        raise NotImplementedError


class ImmediateTurnScheduler(TurnScheduler):
    """Runs the callback before ``schedule`` returns, ignoring the delay."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTurn:
        handle = ScheduledTurn(delay_s, callback)
        handle.fire()
        return handle


class SleepTurnScheduler(TurnScheduler):
    """Blocks for the presentation delay, then runs the callback."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTurn:
        handle = ScheduledTurn(delay_s, callback)
        if handle.delay_s > 0:
            time.sleep(handle.delay_s)
        handle.fire()
        return handle


class ManualTurnScheduler(TurnScheduler):
    """Queues callbacks until ``run_pending`` is called; used by hosts that own the clock."""

    def __init__(self) -> None:
        self._queue: List[ScheduledTurn] = []

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTurn:
        handle = ScheduledTurn(delay_s, callback)
        self._queue.append(handle)
        return handle

    @property
    def pending_count(self) -> int:
        return sum(1 for handle in self._queue if handle.pending)

    def run_pending(self) -> int:
        fired = 0
        while self._queue:
            handle = self._queue.pop(0)
            if handle.fire():
                fired += 1
        return fired

