from __future__ import annotations

import copy
import logging
import random
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence, Tuple

from lorequest.application.services.achievement_service import AchievementService, build_catalogue, ensure_progress_entries
from lorequest.application.services.balance_tables import ENEMY_TURN_DELAY_S
from lorequest.application.services.combat_service import CombatService
from lorequest.application.services.encounter_service import generate_enemy, should_trigger_encounter
from lorequest.application.services.exploration_service import Coordinates, ExplorationService, discoverable_locations
from lorequest.application.services.inventory_service import InventoryService
from lorequest.application.services.progression_service import ProgressionService, new_player_record
from lorequest.application.services.quest_service import QuestService
from lorequest.application.services.resource_service import ResourceService
from lorequest.application.services.turn_scheduler import TurnScheduler
from lorequest.domain.models.achievement import Location
from lorequest.domain.models.combat import CombatAction, CombatPhase, Encounter
from lorequest.domain.models.enemy import Enemy
from lorequest.domain.models.item import EquipmentSlot, ItemSpec
from lorequest.domain.models.player import PlayerClass, PlayerRecord
from lorequest.domain.models.quest import QuestBoard, QuestObjectiveKind
from lorequest.domain.notifications import NotificationKind, NotificationSink, notify_safely
from lorequest.domain.repositories import ProfileStore, QuestStore


logger = logging.getLogger(__name__)


class GameService:
    """Player-id keyed entry point: load, run one operation, persist once.

    Unknown player ids are a silent no-op returning ``None``. Discoveries,
    walking, class choice and combat victories also feed the quest board.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        quest_store: QuestStore,
        *,
        locations: Sequence[Location] = (),
        notifier: Optional[NotificationSink] = None,
        event_publisher=None,
        scheduler: Optional[TurnScheduler] = None,
        enemy_turn_delay_s: float = ENEMY_TURN_DELAY_S,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.profile_store = profile_store
        self.quest_store = quest_store
        self.catalogue = build_catalogue(locations)
        self.notifier = notifier
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now

        self.inventory = InventoryService(notifier=notifier, event_publisher=event_publisher)
        self.resources = ResourceService(notifier=notifier, event_publisher=event_publisher)
        self.progression = ProgressionService(
            notifier=notifier,
            event_publisher=event_publisher,
            inventory_service=self.inventory,
        )
        self.achievements = AchievementService(
            notifier=notifier,
            event_publisher=event_publisher,
            progression_service=self.progression,
        )
        self.quests = QuestService(notifier=notifier, event_publisher=event_publisher, progression_service=self.progression)
        self.exploration = ExplorationService(
            notifier=notifier,
            event_publisher=event_publisher,
            progression_service=self.progression,
        )
        self.combat = CombatService(
            notifier=notifier,
            event_publisher=event_publisher,
            progression_service=self.progression,
            inventory_service=self.inventory,
            scheduler=scheduler,
            enemy_turn_delay_s=enemy_turn_delay_s,
            rng=self.rng,
            on_change=self._persist_deferred_turn,
        )
        self._acting = False
        self._encounters: Dict[str, Encounter] = {}

    def set_seed(self, seed: int) -> None:
        self.rng.seed(seed)

    def _load(self, player_id: str) -> Optional[PlayerRecord]:
        return self.profile_store.get(player_id)

    def _commit(self, before: Optional[PlayerRecord], after: Optional[PlayerRecord]) -> Optional[PlayerRecord]:
        if after is not None and after is not before:
            self.profile_store.put(after)
        return after

    def _board_for(self, record: PlayerRecord) -> Tuple[PlayerRecord, QuestBoard]:
        stored = self.quest_store.get(record.player_id)
        record, board = self.quests.refresh_quests(record, stored, self.clock())
        if board is not stored:
            self.quest_store.put(board)
        return record, board

    def _route(self, record: PlayerRecord, kind: QuestObjectiveKind, amount: float) -> PlayerRecord:
        record, board = self._board_for(record)
        updated, updated_board = self.quests.record_activity(record, board, kind, amount, self.clock())
        if updated_board is not board:
            self.quest_store.put(updated_board)
        return updated

    def active_encounter(self, player_id: str) -> Optional[Encounter]:
        encounter = self._encounters.get(player_id)
        if encounter is not None and not encounter.in_combat:
            del self._encounters[player_id]
            return None
        return encounter

    def _locked(self, player_id: str) -> bool:
        # The encounter owns the record until it resolves or is abandoned.
        if self.active_encounter(player_id) is None:
            return False
        notify_safely(self.notifier, NotificationKind.WARNING, "In combat", "Finish or abandon the current battle first.")
        return True

    def _run(self, player_id: str, operation: Callable[[PlayerRecord], Optional[PlayerRecord]]) -> Optional[PlayerRecord]:
        record = self._load(player_id)
        if record is None:
            return None
        if self._locked(player_id):
            return record
        return self._commit(record, operation(record))

    def create_player(self, player_id: str, name: str) -> PlayerRecord:
        existing = self._load(player_id)
        if existing is not None:
            notify_safely(self.notifier, NotificationKind.WARNING, "Player exists", f"{player_id} is already registered.")
            return existing
        record = new_player_record(player_id, name, now=self.clock())
        ensure_progress_entries(record, self.catalogue)
        self.profile_store.put(record)
        logger.debug("Created player %s", player_id)
        return record

    def get_player(self, player_id: str) -> Optional[PlayerRecord]:
        return self._load(player_id)

    def regenerate(self, player_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.resources.regenerate(record, self.clock()))

    def regenerate_energy(self, player_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.resources.regenerate_energy(record, self.clock()))

    def choose_class(self, player_id: str, player_class: PlayerClass | str) -> Optional[PlayerRecord]:
        def _operation(record: PlayerRecord) -> PlayerRecord:
            updated = self.progression.choose_class(record, player_class)
            if updated is record:
                return record
            return self._route(updated, QuestObjectiveKind.CHOOSE_CLASS, 1)

        return self._run(player_id, _operation)

    def upgrade_stat_with_rune(self, player_id: str, attribute: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.resources.upgrade_stat_with_rune(record, attribute))

    def add_experience(self, player_id: str, amount: int, reason: str = "") -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.progression.add_experience(record, amount, reason))

    def add_gold(self, player_id: str, amount: int, source: str = "") -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.progression.add_gold(record, amount, source))

    def spend_gold(self, player_id: str, amount: int, reason: str = "") -> Tuple[Optional[PlayerRecord], bool]:
        record = self._load(player_id)
        if record is None:
            return None, False
        if self._locked(player_id):
            return record, False
        updated, success = self.progression.spend_gold(record, amount, reason)
        return self._commit(record, updated), success

    def add_item(self, player_id: str, spec: ItemSpec, quantity: int = 1) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.add_item(record, spec, quantity))

    def remove_item(self, player_id: str, item_id: str, quantity: int = 1) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.remove_item(record, item_id, quantity))

    def use_item(self, player_id: str, item_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.use_item(record, item_id))

    def equip(self, player_id: str, item_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.equip(record, item_id))

    def unequip(self, player_id: str, slot: EquipmentSlot | str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.unequip(record, slot))

    def purchase(self, player_id: str, offer_id: str, quantity: int = 1) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.inventory.purchase(record, offer_id, quantity))

    def discover_location(self, player_id: str, location_id: str) -> Optional[PlayerRecord]:
        def _operation(record: PlayerRecord) -> PlayerRecord:
            location = self.catalogue.location(location_id)
            if location is None:
                notify_safely(self.notifier, NotificationKind.ERROR, "Unknown location", f"No location with id {location_id}.")
                return record
            already_known = location_id in record.discovered_location_ids
            updated = self.achievements.on_location_discovered(record, location, self.catalogue)
            if updated is record or already_known:
                return updated
            return self._route(updated, QuestObjectiveKind.DISCOVER, 1)

        return self._run(player_id, _operation)

    def discover_nearby(self, player_id: str, position: Coordinates) -> Optional[PlayerRecord]:
        def _operation(record: PlayerRecord) -> PlayerRecord:
            found = discoverable_locations(position, self.catalogue.locations, record.discovered_location_ids)
            updated = record
            for location in found:
                updated = self.achievements.on_location_discovered(updated, location, self.catalogue)
            if found and updated is not record:
                updated = self._route(updated, QuestObjectiveKind.DISCOVER, len(found))
            return updated

        return self._run(player_id, _operation)

    def record_distance(self, player_id: str, distance_km: float) -> Optional[PlayerRecord]:
        def _operation(record: PlayerRecord) -> PlayerRecord:
            updated = self.exploration.record_distance(record, distance_km, self.clock())
            if updated is record:
                return record
            return self._route(updated, QuestObjectiveKind.WALK, distance_km)

        return self._run(player_id, _operation)

    def track_achievement(self, player_id: str, achievement_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.achievements.track_achievement(record, achievement_id))

    def untrack_achievement(self, player_id: str, achievement_id: str) -> Optional[PlayerRecord]:
        return self._run(player_id, lambda record: self.achievements.untrack_achievement(record, achievement_id))

    def refresh_quests(self, player_id: str) -> Optional[QuestBoard]:
        record = self._load(player_id)
        if record is None:
            return None
        if self._locked(player_id):
            return self.quest_store.get(player_id)
        updated, board = self._board_for(record)
        self._commit(record, updated)
        return board

    def update_quest_progress(self, player_id: str, quest_id: str, delta: float) -> Optional[PlayerRecord]:
        record = self._load(player_id)
        if record is None:
            return None
        if self._locked(player_id):
            return record
        refreshed, board = self._board_for(record)
        updated, updated_board = self.quests.update_quest_progress(refreshed, board, quest_id, delta, self.clock())
        if updated_board is not board:
            self.quest_store.put(updated_board)
        return self._commit(record, updated)

    def _begin_combat(self, record: PlayerRecord, enemy: Enemy) -> Optional[Encounter]:
        """Charge the battle's energy, persist it, and open the encounter."""
        if record.is_dead:
            return self.combat.start_combat(record, enemy)
        refreshed = self.resources.regenerate_energy(record, self.clock())
        charged, paid = self.resources.spend_energy(refreshed)
        self._commit(record, charged)
        if not paid:
            return None
        encounter = self.combat.start_combat(charged, enemy)
        if encounter is not None and encounter.in_combat:
            self._encounters[record.player_id] = encounter
        return encounter

    def start_combat(self, player_id: str, enemy: Optional[Enemy] = None) -> Optional[Encounter]:
        record = self._load(player_id)
        if record is None:
            return None
        active = self.active_encounter(player_id)
        if active is not None:
            notify_safely(self.notifier, NotificationKind.WARNING, "Already in combat", f"You are fighting {active.enemy.name}.")
            return active
        return self._begin_combat(record, enemy or generate_enemy(record.level, self.rng))

    def maybe_start_random_encounter(self, player_id: str, distance_m: float) -> Optional[Encounter]:
        record = self._load(player_id)
        if record is None or record.is_dead or self.active_encounter(player_id) is not None:
            return None
        if not should_trigger_encounter(distance_m, self.rng):
            return None
        return self._begin_combat(record, generate_enemy(record.level, self.rng))

    def perform_combat_action(self, encounter: Optional[Encounter], action: CombatAction) -> Optional[Encounter]:
        if encounter is None:
            return None
        before_phase = encounter.phase
        snapshot = copy.deepcopy(encounter.record)
        self._acting = True
        try:
            self.combat.perform_action(encounter, action)
        finally:
            self._acting = False
        if encounter.phase == CombatPhase.VICTORY and before_phase != CombatPhase.VICTORY:
            encounter.record = self._route(encounter.record, QuestObjectiveKind.WIN_BATTLE, 1)
        if encounter.record != snapshot:
            self.profile_store.put(encounter.record)
        return encounter

    def abandon_combat(self, encounter: Optional[Encounter]) -> Optional[Encounter]:
        return self.combat.abandon(encounter)

    def _persist_deferred_turn(self, encounter: Encounter) -> None:
        if self._acting:
            return
        self.profile_store.put(encounter.record)
