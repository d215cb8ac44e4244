import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.achievement_service import (
    AchievementService,
    build_catalogue,
    continent_id,
    realm_id,
    territory_id,
)
from lorequest.application.services.balance_tables import META_ACHIEVEMENT_ID
from lorequest.application.services.progression_service import new_player_record
from lorequest.domain.events import AchievementCompletedEvent, LocationDiscoveredEvent
from lorequest.domain.models.achievement import AchievementKind, Location
from lorequest.domain.notifications import NotificationKind
from lorequest.infrastructure.notifications import RecordingNotificationSink


LOCATIONS = (
    Location("york", "York", "Northumbria", "Albion"),
    Location("durham", "Durham", "Northumbria", "Albion"),
    Location("bath", "Bath", "Wessex", "Albion"),
)


class AchievementCatalogueTests(unittest.TestCase):
    def test_catalogue_builds_every_tier(self) -> None:
        catalogue = build_catalogue(LOCATIONS)

        self.assertEqual(3, len(catalogue.of_kind(AchievementKind.TERRITORY)))
        self.assertEqual(2, len(catalogue.of_kind(AchievementKind.REALM)))
        self.assertEqual(1, len(catalogue.of_kind(AchievementKind.CONTINENT)))
        self.assertEqual(500, catalogue.get(continent_id("Albion")).xp_reward)
        self.assertIn(META_ACHIEVEMENT_ID, catalogue.achievements)

    def test_empty_catalogue_has_no_meta(self) -> None:
        self.assertEqual({}, build_catalogue([]).achievements)


class AchievementServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sink = RecordingNotificationSink()
        self.events: list[object] = []
        self.service = AchievementService(notifier=self.sink, event_publisher=self.events.append)
        self.catalogue = build_catalogue(LOCATIONS)
        self.record = self.service.initialize_achievements(new_player_record("p1", "Ayla"), self.catalogue)

    def _completed(self) -> list[str]:
        return [event.achievement_id for event in self.events if isinstance(event, AchievementCompletedEvent)]

    def test_initialize_is_idempotent(self) -> None:
        self.assertEqual(set(self.catalogue.achievements), set(self.record.achievements))
        self.assertIs(self.record, self.service.initialize_achievements(self.record, LOCATIONS))

    def test_first_discovery_completes_territory_only(self) -> None:
        updated = self.service.on_location_discovered(self.record, LOCATIONS[0], self.catalogue)

        self.assertEqual(["york"], updated.discovered_location_ids)
        self.assertEqual([territory_id("york")], self._completed())
        self.assertEqual(0.5, updated.achievements[realm_id("Northumbria")].progress)
        self.assertEqual(0.0, updated.achievements[continent_id("Albion")].progress)
        self.assertAlmostEqual(1 / 3, updated.achievements[META_ACHIEVEMENT_ID].progress)
        self.assertEqual(50, updated.experience)
        self.assertEqual(75, updated.gold)
        self.assertTrue(any(isinstance(event, LocationDiscoveredEvent) for event in self.events))

    def test_realm_completes_exactly_once(self) -> None:
        record = self.service.on_location_discovered(self.record, LOCATIONS[0], self.catalogue)
        record = self.service.on_location_discovered(record, LOCATIONS[1], self.catalogue)

        self.assertEqual(1, self._completed().count(realm_id("Northumbria")))
        self.assertTrue(record.achievements[realm_id("Northumbria")].completed)
        self.assertEqual(0.5, record.achievements[continent_id("Albion")].progress)

        replay = self.service.on_location_discovered(record, LOCATIONS[1], self.catalogue)
        self.assertIs(record, replay)
        self.assertEqual(1, self._completed().count(realm_id("Northumbria")))

    def test_world_completion_unlocks_continent_and_meta(self) -> None:
        record = self.record
        for location in LOCATIONS:
            record = self.service.on_location_discovered(record, location, self.catalogue)

        completed = self._completed()
        self.assertIn(continent_id("Albion"), completed)
        self.assertIn(META_ACHIEVEMENT_ID, completed)
        self.assertEqual(len(self.catalogue.achievements), record.ledger.achievements_unlocked)
        self.assertEqual(3, record.ledger.locations_discovered)

    def test_unknown_location_is_rejected(self) -> None:
        stranger = Location("atlantis", "Atlantis", "Sea", "Nowhere")

        self.assertIs(self.record, self.service.on_location_discovered(self.record, stranger, self.catalogue))
        self.assertEqual(["Unknown location"], self.sink.titles(NotificationKind.ERROR))

    def test_tracking_is_limited_to_three(self) -> None:
        ids = list(self.catalogue.achievements)
        record = self.record
        for achievement_id in ids[:3]:
            record = self.service.track_achievement(record, achievement_id)

        self.assertIs(record, self.service.track_achievement(record, ids[3]))
        self.assertEqual(["Tracking limit reached"], self.sink.titles(NotificationKind.WARNING))

        record = self.service.untrack_achievement(record, ids[0])
        record = self.service.track_achievement(record, ids[3])
        self.assertEqual(set(ids[1:4]), set(self.service.tracked_ids(record)))

    def test_tracking_unknown_achievement(self) -> None:
        self.assertIs(self.record, self.service.track_achievement(self.record, "nope"))
        self.assertEqual(["Unknown achievement"], self.sink.titles(NotificationKind.ERROR))


if __name__ == "__main__":
    unittest.main()
