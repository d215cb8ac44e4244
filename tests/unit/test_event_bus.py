import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.event_bus import EventBus
from lorequest.application.services.progression_service import ProgressionService, new_player_record
from lorequest.domain.events import LevelUpAppliedEvent, QuestCompletedEvent


class EventBusTests(unittest.TestCase):
    def test_handlers_run_in_priority_then_subscription_order(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe(LevelUpAppliedEvent, lambda event: calls.append("late"), priority=200)
        bus.subscribe(LevelUpAppliedEvent, lambda event: calls.append("first"), priority=10)
        bus.subscribe(LevelUpAppliedEvent, lambda event: calls.append("second"), priority=10)

        bus.publish(LevelUpAppliedEvent("p1", 1, 2, 100))

        self.assertEqual(["first", "second", "late"], calls)

    def test_failing_handler_is_isolated(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def _broken(event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(QuestCompletedEvent, _broken, priority=1)
        bus.subscribe(QuestCompletedEvent, lambda event: calls.append(event.quest_id))

        with self.assertLogs("lorequest.application.services.event_bus", level="ERROR"):
            bus(QuestCompletedEvent("p1", "daily-walk", "daily", 50, 10))

        self.assertEqual(["daily-walk"], calls)
        self.assertEqual(1, len(bus.last_publish_errors()))

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        calls: list[object] = []
        handler = calls.append
        bus.subscribe(LevelUpAppliedEvent, handler)

        self.assertTrue(bus.unsubscribe(LevelUpAppliedEvent, handler))
        self.assertFalse(bus.unsubscribe(LevelUpAppliedEvent, handler))
        bus.publish(LevelUpAppliedEvent("p1", 1, 2, 100))
        self.assertEqual([], calls)

    def test_bus_is_a_service_publisher(self) -> None:
        bus = EventBus()
        levels: list[int] = []
        bus.subscribe(LevelUpAppliedEvent, lambda event: levels.append(event.to_level))
        service = ProgressionService(event_publisher=bus)

        service.add_experience(new_player_record("p1", "Ayla"), 900)

        self.assertEqual([2, 3], levels)


if __name__ == "__main__":
    unittest.main()
