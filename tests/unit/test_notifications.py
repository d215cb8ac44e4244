import sys
from pathlib import Path
import io
import unittest

from rich.console import Console

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.inventory_service import InventoryService
from lorequest.application.services.progression_service import new_player_record
from lorequest.domain.notifications import NotificationKind, NotificationSink, notify_safely
from lorequest.infrastructure.notifications import (
    LoggingNotificationSink,
    RecordingNotificationSink,
    RichConsoleNotificationSink,
)


class _ExplodingSink(NotificationSink):
    def notify(self, kind, title, description=""):
        raise RuntimeError("display offline")


class NotificationTests(unittest.TestCase):
    def test_recording_sink_filters_by_kind(self) -> None:
        sink = RecordingNotificationSink()
        sink.notify(NotificationKind.SUCCESS, "Saved")
        sink.notify(NotificationKind.ERROR, "Broken", "details")

        self.assertEqual(["Saved", "Broken"], sink.titles())
        self.assertEqual(["Broken"], sink.titles(NotificationKind.ERROR))
        sink.clear()
        self.assertEqual([], sink.notifications)

    def test_failing_sink_never_breaks_the_operation(self) -> None:
        service = InventoryService(notifier=_ExplodingSink())
        record = new_player_record("p1", "Ayla")

        with self.assertLogs("lorequest.domain.notifications", level="ERROR"):
            updated = service.purchase(record, "health-potion")

        self.assertEqual(0, updated.gold)
        self.assertEqual(1, len(updated.inventory))

    def test_notify_safely_ignores_missing_sink(self) -> None:
        notify_safely(None, NotificationKind.SUCCESS, "Nobody listening")

    def test_rich_sink_renders_title_and_description(self) -> None:
        buffer = io.StringIO()
        sink = RichConsoleNotificationSink(Console(file=buffer, width=80, color_system=None))

        sink.notify(NotificationKind.WARNING, "Quest expired", "Daily Stroll is no longer active.")

        output = buffer.getvalue()
        self.assertIn("Quest expired", output)
        self.assertIn("Daily Stroll", output)

    def test_logging_sink_maps_kind_to_level(self) -> None:
        sink = LoggingNotificationSink()

        with self.assertLogs("lorequest.notifications", level="INFO") as captured:
            sink.notify(NotificationKind.SUCCESS, "Level up!", "Level 2")
            sink.notify(NotificationKind.ERROR, "Insufficient gold")

        self.assertEqual(["INFO", "ERROR"], [record.levelname for record in captured.records])
        self.assertEqual("error", captured.records[1].notification_kind)


if __name__ == "__main__":
    unittest.main()
