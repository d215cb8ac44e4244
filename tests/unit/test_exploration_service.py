import sys
from pathlib import Path
import unittest
from datetime import datetime, timedelta

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.balance_tables import DEFAULT_LOCATIONS
from lorequest.application.services.exploration_service import (
    ExplorationService,
    discoverable_locations,
    haversine_km,
)
from lorequest.application.services.progression_service import new_player_record


NOW = datetime(2026, 10, 14, 9, 0)
LONDON = (51.5074, -0.1278)
PARIS = (48.8566, 2.3522)


class GeographyTests(unittest.TestCase):
    def test_haversine_london_to_paris(self) -> None:
        self.assertAlmostEqual(343.5, haversine_km(LONDON, PARIS), delta=2.0)
        self.assertEqual(0.0, haversine_km(LONDON, LONDON))

    def test_discoverable_locations_skip_known(self) -> None:
        found = discoverable_locations((51.51, -0.13), DEFAULT_LOCATIONS)
        self.assertEqual(["london"], [row.id for row in found])

        self.assertEqual([], discoverable_locations((51.51, -0.13), DEFAULT_LOCATIONS, ["london"]))

    def test_nothing_nearby_in_open_ocean(self) -> None:
        self.assertEqual([], discoverable_locations((0.0, -30.0), DEFAULT_LOCATIONS))


class WalkingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.service = ExplorationService()
        self.record = new_player_record("p1", "Ayla")

    def test_implausible_deltas_are_ignored(self) -> None:
        with self.assertLogs("lorequest.application.services.exploration_service", level="WARNING"):
            self.assertIs(self.record, self.service.record_distance(self.record, 1.5, NOW))
        self.assertIs(self.record, self.service.record_distance(self.record, 0, NOW))
        self.assertIs(self.record, self.service.record_distance(self.record, -0.2, NOW))

    def test_whole_kilometres_award_xp_once_per_day(self) -> None:
        record = self.service.record_distance(self.record, 0.6, NOW)
        self.assertEqual(0, record.experience)

        record = self.service.record_distance(record, 0.6, NOW)
        self.assertEqual(10, record.experience)
        self.assertAlmostEqual(0.2, record.walking.pending_km)
        self.assertEqual(NOW.date(), record.walking.last_award_date)

        record = self.service.record_distance(record, 0.9, NOW)
        record = self.service.record_distance(record, 0.9, NOW)
        self.assertEqual(10, record.experience)
        self.assertAlmostEqual(2.0, record.walking.pending_km)
        self.assertAlmostEqual(3.0, record.ledger.distance_travelled_km)

        record = self.service.record_distance(record, 0.1, NOW + timedelta(days=1))
        self.assertEqual(30, record.experience)
        self.assertEqual(30, record.walking.earned_xp)
        self.assertEqual(30, record.ledger.walking_xp_earned)


if __name__ == "__main__":
    unittest.main()
