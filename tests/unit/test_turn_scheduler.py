import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services import turn_scheduler
from lorequest.application.services.turn_scheduler import (
    ImmediateTurnScheduler,
    ManualTurnScheduler,
    ScheduledTurn,
    SleepTurnScheduler,
)


class TurnSchedulerTests(unittest.TestCase):
    def test_handle_fires_once_and_cannot_be_cancelled_after(self) -> None:
        calls: list[int] = []
        handle = ScheduledTurn(0.5, lambda: calls.append(1))

        self.assertTrue(handle.fire())
        self.assertFalse(handle.fire())
        self.assertFalse(handle.cancel())
        self.assertEqual([1], calls)

    def test_cancelled_handle_never_fires(self) -> None:
        calls: list[int] = []
        handle = ScheduledTurn(0.5, lambda: calls.append(1))

        self.assertTrue(handle.cancel())
        self.assertFalse(handle.fire())
        self.assertTrue(handle.cancelled)
        self.assertEqual([], calls)

    def test_immediate_scheduler_runs_inline(self) -> None:
        calls: list[int] = []

        handle = ImmediateTurnScheduler().schedule(1.0, lambda: calls.append(1))

        self.assertEqual([1], calls)
        self.assertFalse(handle.pending)

    def test_sleep_scheduler_waits_for_delay(self) -> None:
        calls: list[int] = []
        with mock.patch.object(turn_scheduler.time, "sleep") as sleep:
            SleepTurnScheduler().schedule(1.0, lambda: calls.append(1))

        sleep.assert_called_once_with(1.0)
        self.assertEqual([1], calls)

    def test_manual_scheduler_queues_until_run(self) -> None:
        calls: list[str] = []
        scheduler = ManualTurnScheduler()
        scheduler.schedule(1.0, lambda: calls.append("a"))
        cancelled = scheduler.schedule(1.0, lambda: calls.append("b"))
        cancelled.cancel()

        self.assertEqual(1, scheduler.pending_count)
        self.assertEqual(1, scheduler.run_pending())
        self.assertEqual(["a"], calls)
        self.assertEqual(0, scheduler.pending_count)


if __name__ == "__main__":
    unittest.main()
