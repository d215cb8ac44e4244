import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.progression_service import (
    ProgressionService,
    level_progress_percent,
    new_player_record,
)
from lorequest.domain.events import LevelUpAppliedEvent
from lorequest.domain.models.item import EquipmentSlot
from lorequest.domain.models.player import PlayerClass
from lorequest.domain.notifications import NotificationKind
from lorequest.infrastructure.notifications import RecordingNotificationSink


class ProgressionServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sink = RecordingNotificationSink()
        self.events: list[object] = []
        self.service = ProgressionService(notifier=self.sink, event_publisher=self.events.append)
        self.record = new_player_record("p1", "Ayla")

    def test_new_record_defaults(self) -> None:
        self.assertEqual(1, self.record.level)
        self.assertEqual(50, self.record.gold)
        self.assertEqual(100, self.record.health)
        self.assertEqual(110, self.record.max_health)
        self.assertIsNone(self.record.player_class)

    def test_experience_below_threshold_keeps_level(self) -> None:
        updated = self.service.add_experience(self.record, 250, "walking")

        self.assertIsNot(self.record, updated)
        self.assertEqual(1, updated.level)
        self.assertEqual(250, updated.experience)
        self.assertEqual(0, self.record.experience)
        self.assertFalse(self.events)

    def test_crossing_threshold_grants_gold_chest_and_event(self) -> None:
        updated = self.service.add_experience(self.record, 450)

        self.assertEqual(2, updated.level)
        self.assertEqual(150, updated.gold)
        chest = [item for item in updated.inventory if item.name == "Achievement Chest"]
        self.assertEqual(1, len(chest))
        self.assertEqual([LevelUpAppliedEvent("p1", 1, 2, 100)], self.events)
        self.assertTrue(any(title.startswith("Level up!") for title in self.sink.titles(NotificationKind.SUCCESS)))

    def test_multiple_levels_settle_each_step(self) -> None:
        updated = self.service.add_experience(self.record, 1000)

        self.assertEqual(3, updated.level)
        self.assertEqual(50 + 100 + 150, updated.gold)
        chest = next(item for item in updated.inventory if item.name == "Achievement Chest")
        self.assertEqual(2, chest.quantity)
        self.assertEqual([2, 3], [event.to_level for event in self.events])

    def test_non_positive_experience_is_ignored(self) -> None:
        self.assertIs(self.record, self.service.add_experience(self.record, 0))
        self.assertIsNone(self.service.add_experience(None, 10))

    def test_spend_gold_with_insufficient_funds_returns_original(self) -> None:
        updated, success = self.service.spend_gold(self.record, 75, "a map")

        self.assertFalse(success)
        self.assertIs(self.record, updated)
        self.assertEqual(["Insufficient gold"], self.sink.titles(NotificationKind.ERROR))

    def test_spend_gold_rejects_negative_amount(self) -> None:
        updated, success = self.service.spend_gold(self.record, -5)

        self.assertFalse(success)
        self.assertIs(self.record, updated)
        self.assertEqual(["Invalid amount"], self.sink.titles(NotificationKind.ERROR))

    def test_spend_gold_deducts(self) -> None:
        updated, success = self.service.spend_gold(self.record, 20)

        self.assertTrue(success)
        self.assertEqual(30, updated.gold)
        self.assertEqual(50, self.record.gold)

    def test_add_gold_tracks_ledger(self) -> None:
        updated = self.service.add_gold(self.record, 25, "a chest")

        self.assertEqual(75, updated.gold)
        self.assertEqual(25, updated.ledger.total_gold_earned)

    def test_choose_class_equips_starter_kit(self) -> None:
        updated = self.service.choose_class(self.record, "knight")

        self.assertEqual(PlayerClass.KNIGHT, updated.player_class)
        self.assertIn(EquipmentSlot.MAIN_WEAPON, updated.equipment)
        self.assertIn(EquipmentSlot.BODY, updated.equipment)
        self.assertEqual(3, updated.armor)
        self.assertEqual({"strength": 2}, updated.stat_bonuses)
        self.assertEqual([], updated.inventory)

    def test_choose_class_twice_warns(self) -> None:
        knight = self.service.choose_class(self.record, PlayerClass.KNIGHT)
        again = self.service.choose_class(knight, PlayerClass.WIZARD)

        self.assertIs(knight, again)
        self.assertEqual(["Class already chosen"], self.sink.titles(NotificationKind.WARNING))

    def test_unknown_class_is_an_error(self) -> None:
        self.assertIs(self.record, self.service.choose_class(self.record, "bard"))
        self.assertEqual(["Unknown class"], self.sink.titles(NotificationKind.ERROR))

    def test_level_progress_percent(self) -> None:
        self.record.experience = 200
        self.assertEqual(50, level_progress_percent(self.record))
        self.record.level = 100
        self.assertEqual(100, level_progress_percent(self.record))


if __name__ == "__main__":
    unittest.main()
