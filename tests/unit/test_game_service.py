import sys
from pathlib import Path
import random
import unittest
from datetime import datetime, timedelta

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.balance_tables import DEFAULT_LOCATIONS
from lorequest.application.services.game_service import GameService
from lorequest.application.services.turn_scheduler import ManualTurnScheduler
from lorequest.domain.events import AchievementCompletedEvent
from lorequest.domain.models.combat import CombatAction, CombatPhase
from lorequest.domain.models.enemy import AttackType, Enemy
from lorequest.domain.models.player import PlayerClass
from lorequest.domain.notifications import NotificationKind
from lorequest.infrastructure.inmemory.stores import InMemoryProfileStore, InMemoryQuestStore
from lorequest.infrastructure.notifications import RecordingNotificationSink


NOW = datetime(2026, 10, 14, 9, 0)


class _FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def _weak_enemy() -> Enemy:
    return Enemy(name="Rat", level=1, max_health=3, current_health=3, attack=2, defense=0,
                 attack_type=AttackType.MELEE, xp_reward=10, gold_reward=2)


class GameServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sink = RecordingNotificationSink()
        self.profiles = InMemoryProfileStore()
        self.quests = InMemoryQuestStore()
        self.events: list[object] = []
        self.service = self._service()
        self.service.create_player("p1", "Ayla")

    def _service(self, scheduler=None) -> GameService:
        return GameService(
            self.profiles,
            self.quests,
            locations=DEFAULT_LOCATIONS,
            notifier=self.sink,
            event_publisher=self.events.append,
            scheduler=scheduler,
            rng=_FixedRandom(0.99),
            clock=lambda: NOW,
        )

    def test_unknown_player_is_a_silent_no_op(self) -> None:
        self.assertIsNone(self.service.add_gold("ghost", 10))
        self.assertIsNone(self.service.start_combat("ghost"))
        self.assertEqual((None, False), self.service.spend_gold("ghost", 1))
        self.assertEqual([], self.sink.titles(NotificationKind.ERROR))

    def test_create_player_seeds_achievements_and_rejects_duplicates(self) -> None:
        record = self.service.get_player("p1")
        self.assertEqual(len(self.service.catalogue.achievements), len(record.achievements))

        again = self.service.create_player("p1", "Someone else")
        self.assertEqual("Ayla", again.name)
        self.assertEqual(["Player exists"], self.sink.titles(NotificationKind.WARNING))

    def test_failed_operation_does_not_persist(self) -> None:
        writes = self.profiles.put_count

        _, success = self.service.spend_gold("p1", 999)

        self.assertFalse(success)
        self.assertEqual(writes, self.profiles.put_count)

    def test_successful_operation_persists_once(self) -> None:
        writes = self.profiles.put_count

        self.service.purchase("p1", "health-potion")

        self.assertEqual(writes + 1, self.profiles.put_count)
        self.assertEqual(0, self.service.get_player("p1").gold)

    def test_choose_class_advances_tutorial(self) -> None:
        record = self.service.choose_class("p1", "ranger")

        self.assertEqual(PlayerClass.RANGER, record.player_class)
        self.assertIn("tutorial-choose-class", record.completed_quest_ids)
        board = self.quests.get("p1")
        self.assertTrue(board.quests["tutorial-choose-class"].completed)

    def test_walking_routes_to_quests(self) -> None:
        record = self.service.record_distance("p1", 0.5)

        self.assertAlmostEqual(0.5, record.ledger.distance_travelled_km)
        board = self.service.refresh_quests("p1")
        self.assertAlmostEqual(0.5, board.quests["daily-walk-2026-10-14"].progress)

    def test_discovery_routes_to_achievements_and_quests(self) -> None:
        record = self.service.discover_location("p1", "london")

        self.assertEqual(["london"], record.discovered_location_ids)
        self.assertTrue(record.achievements["territory-london"].completed)
        self.assertIn("daily-discover-2026-10-14", record.completed_quest_ids)

        replay = self.service.discover_location("p1", "london")
        self.assertEqual(record, replay)

    def test_unknown_location(self) -> None:
        self.service.discover_location("p1", "atlantis")

        self.assertEqual(["Unknown location"], self.sink.titles(NotificationKind.ERROR))

    def test_discover_nearby_uses_coordinates(self) -> None:
        record = self.service.discover_nearby("p1", (48.86, 2.35))

        self.assertEqual(["paris"], record.discovered_location_ids)

    def test_victory_persists_and_routes_battle_quest(self) -> None:
        self.service.choose_class("p1", "knight")
        encounter = self.service.start_combat("p1", _weak_enemy())

        self.service.perform_combat_action(encounter, CombatAction.attack())

        self.assertEqual(CombatPhase.VICTORY, encounter.phase)
        stored = self.service.get_player("p1")
        self.assertEqual(1, stored.ledger.battles_won)
        board = self.quests.get("p1")
        self.assertEqual(1, board.quests["daily-battle-2026-10-14"].progress)

    def test_deferred_enemy_turn_is_persisted(self) -> None:
        scheduler = ManualTurnScheduler()
        service = self._service(scheduler=scheduler)
        enemy = Enemy(name="Ogre", level=1, max_health=500, current_health=500, attack=6, defense=0)
        encounter = service.start_combat("p1", enemy)

        service.perform_combat_action(encounter, CombatAction.attack())
        self.assertEqual(100, service.get_player("p1").health)

        scheduler.run_pending()

        self.assertEqual(94, service.get_player("p1").health)
        self.assertEqual(CombatPhase.PLAYER_TURN, encounter.phase)

    def test_fight_locks_other_changes_until_it_ends(self) -> None:
        enemy = Enemy(name="Ogre", level=1, max_health=500, current_health=500, attack=6, defense=0)
        encounter = self.service.start_combat("p1", enemy)

        blocked = self.service.discover_location("p1", "london")
        self.assertEqual([], blocked.discovered_location_ids)
        self.assertIs(encounter, self.service.start_combat("p1", enemy))
        self.assertEqual(["In combat", "Already in combat"], self.sink.titles(NotificationKind.WARNING))

        self.service.perform_combat_action(encounter, CombatAction.attack())
        self.service.abandon_combat(encounter)
        record = self.service.discover_location("p1", "london")
        self.service.discover_location("p1", "london")

        self.assertEqual(["london"], record.discovered_location_ids)
        self.assertEqual(94, record.health)
        grants = [
            event
            for event in self.events
            if isinstance(event, AchievementCompletedEvent) and event.achievement_id == "territory-london"
        ]
        self.assertEqual(1, len(grants))

    def test_starting_combat_spends_energy(self) -> None:
        self.service.start_combat("p1", _weak_enemy())

        self.assertEqual(4, self.service.get_player("p1").energy)

    def test_combat_is_refused_without_energy(self) -> None:
        record = self.service.get_player("p1")
        record.energy = 0
        self.profiles.put(record)

        self.assertIsNone(self.service.start_combat("p1", _weak_enemy()))
        self.assertEqual(["Not enough energy"], self.sink.titles(NotificationKind.ERROR))
        self.assertIsNone(self.service.active_encounter("p1"))

    def test_energy_regenerates_before_combat_is_charged(self) -> None:
        record = self.service.get_player("p1")
        record.energy = 0
        record.last_energy_regen_at = NOW - timedelta(minutes=75)
        self.profiles.put(record)

        encounter = self.service.start_combat("p1", _weak_enemy())

        self.assertEqual(CombatPhase.PLAYER_TURN, encounter.phase)
        stored = self.service.get_player("p1")
        self.assertEqual(1, stored.energy)
        self.assertEqual(NOW - timedelta(minutes=15), stored.last_energy_regen_at)

    def test_abandon_combat(self) -> None:
        scheduler = ManualTurnScheduler()
        service = self._service(scheduler=scheduler)
        encounter = service.start_combat("p1", _weak_enemy())
        service.perform_combat_action(encounter, CombatAction.defend())

        service.abandon_combat(encounter)

        self.assertEqual(0, scheduler.run_pending())
        self.assertEqual(CombatPhase.IDLE, encounter.phase)

    def test_random_encounter_respects_distance(self) -> None:
        self.assertIsNone(self.service.maybe_start_random_encounter("p1", 0))
        service = GameService(self.profiles, self.quests, locations=DEFAULT_LOCATIONS, rng=_FixedRandom(0.0))
        encounter = service.maybe_start_random_encounter("p1", 1000)
        self.assertEqual(CombatPhase.PLAYER_TURN, encounter.phase)

    def test_rune_upgrade_through_monthly_reward(self) -> None:
        self.service.update_quest_progress("p1", "monthly-walk-2026-10", 50)

        record = self.service.upgrade_stat_with_rune("p1", "dexterity")

        self.assertEqual(2, record.stats.dexterity)
        self.assertEqual(120, record.max_stamina)

    def test_tracking_through_facade(self) -> None:
        record = self.service.track_achievement("p1", "realm-england")

        self.assertTrue(record.achievements["realm-england"].is_tracked)
        self.assertTrue(self.service.get_player("p1").achievements["realm-england"].is_tracked)


if __name__ == "__main__":
    unittest.main()
