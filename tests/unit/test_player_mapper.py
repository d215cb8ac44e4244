import sys
from pathlib import Path
import json
import unittest
from datetime import date, datetime

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.mappers.player_mapper import (
    board_to_payload,
    payload_to_board,
    payload_to_record,
    record_to_payload,
)
from lorequest.application.services.achievement_service import AchievementService, build_catalogue
from lorequest.application.services.balance_tables import DEFAULT_LOCATIONS, store_offer
from lorequest.application.services.inventory_service import add_units
from lorequest.application.services.progression_service import ProgressionService, new_player_record
from lorequest.application.services.quest_service import QuestService
from lorequest.domain.models.item import EquipmentSlot


NOW = datetime(2026, 10, 14, 9, 0)


class PlayerMapperTests(unittest.TestCase):
    def _rich_record(self):
        record = ProgressionService().choose_class(new_player_record("p1", "Ayla", now=NOW), "wizard")
        record = AchievementService().on_location_discovered(record, DEFAULT_LOCATIONS[0], build_catalogue(DEFAULT_LOCATIONS))
        add_units(record, store_offer("mana-potion").spec, 2)
        record.walking.pending_km = 0.4
        record.walking.last_award_date = date(2026, 10, 13)
        record.achievements["realm-england"].is_tracked = True
        return record

    def test_record_survives_a_json_round_trip(self) -> None:
        record = self._rich_record()

        payload = json.loads(json.dumps(record_to_payload(record)))
        restored = payload_to_record(payload)

        self.assertEqual(record, restored)
        self.assertIn(EquipmentSlot.MAIN_WEAPON, restored.equipment)
        self.assertTrue(restored.achievements["realm-england"].is_tracked)

    def test_board_survives_a_json_round_trip(self) -> None:
        _, board = QuestService().refresh_quests(new_player_record("p1", "Ayla"), None, NOW)

        restored = payload_to_board(json.loads(json.dumps(board_to_payload(board))))

        self.assertEqual(board, restored)
        self.assertIsNotNone(restored.quests["monthly-walk-2026-10"].item_reward)

    def test_payload_without_energy_gets_a_full_bar(self) -> None:
        payload = record_to_payload(new_player_record("p1", "Ayla", now=NOW))
        del payload["resources"]["energy"]
        del payload["resources"]["max_energy"]
        del payload["last_energy_regen_at"]

        restored = payload_to_record(payload)

        self.assertEqual(5, restored.energy)
        self.assertEqual(5, restored.max_energy)
        self.assertIsNone(restored.last_energy_regen_at)

    def test_missing_required_keys_raise_value_error(self) -> None:
        with self.assertRaises(ValueError):
            payload_to_record({"name": "No id"})
        with self.assertRaises(ValueError):
            payload_to_board({"quests": []})

    def test_bad_nested_values_raise_value_error(self) -> None:
        payload = record_to_payload(new_player_record("p1", "Ayla"))
        payload["equipment"] = {"tail": {"id": "x", "name": "Tail"}}
        with self.assertRaises(ValueError):
            payload_to_record(payload)

        payload = record_to_payload(new_player_record("p1", "Ayla"))
        payload["ledger"] = {"unknown_counter": 3}
        with self.assertRaises(ValueError):
            payload_to_record(payload)

    def test_unknown_quest_objective_raises_value_error(self) -> None:
        payload = {"player_id": "p1", "quests": [{"id": "q", "objective": "juggle"}]}

        with self.assertRaises(ValueError):
            payload_to_board(payload)


if __name__ == "__main__":
    unittest.main()
