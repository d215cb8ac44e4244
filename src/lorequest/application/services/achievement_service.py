from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence, Union

from lorequest.application.services.balance_tables import (
    ACHIEVEMENT_REWARDS,
    MAX_TRACKED_ACHIEVEMENTS,
    META_ACHIEVEMENT_ID,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.progression_service import ProgressionService
from lorequest.domain.events import AchievementCompletedEvent, LocationDiscoveredEvent
from lorequest.domain.models.achievement import (
    Achievement,
    AchievementCatalogue,
    AchievementKind,
    AchievementProgress,
    Location,
)
from lorequest.domain.models.player import PlayerRecord


logger = logging.getLogger(__name__)


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", str(value or "").strip().lower()).strip("-")


def territory_id(location_id: str) -> str:
    return f"territory-{location_id}"


def realm_id(realm: str) -> str:
    return f"realm-{_slug(realm)}"


def continent_id(continent: str) -> str:
    return f"continent-{_slug(continent)}"


def _achievement(achievement_id: str, kind: AchievementKind, title: str, description: str, scope: str | None) -> Achievement:
    reward = ACHIEVEMENT_REWARDS[kind]
    return Achievement(
        id=achievement_id,
        kind=kind,
        title=title,
        description=description,
        xp_reward=int(reward["xp"]),
        gold_reward=int(reward["gold"]),
        scope=scope,
    )


def build_catalogue(locations: Iterable[Location]) -> AchievementCatalogue:
    catalogue = AchievementCatalogue(locations=list(locations))
    rows = catalogue.achievements
    for location in catalogue.locations:
        rows[territory_id(location.id)] = _achievement(
            territory_id(location.id),
            AchievementKind.TERRITORY,
            f"Discover {location.name}",
            f"Visit {location.name} in {location.realm}.",
            location.id,
        )
        if realm_id(location.realm) not in rows:
            rows[realm_id(location.realm)] = _achievement(
                realm_id(location.realm),
                AchievementKind.REALM,
                f"Master of {location.realm}",
                f"Discover every territory in {location.realm}.",
                location.realm,
            )
        if continent_id(location.continent) not in rows:
            rows[continent_id(location.continent)] = _achievement(
                continent_id(location.continent),
                AchievementKind.CONTINENT,
                f"Conqueror of {location.continent}",
                f"Complete every realm in {location.continent}.",
                location.continent,
            )
    if catalogue.locations:
        rows[META_ACHIEVEMENT_ID] = _achievement(
            META_ACHIEVEMENT_ID,
            AchievementKind.META,
            "World Explorer",
            "Discover every territory in the world.",
            None,
        )
    return catalogue


def _as_catalogue(all_locations: Union[AchievementCatalogue, Sequence[Location]]) -> AchievementCatalogue:
    if isinstance(all_locations, AchievementCatalogue):
        return all_locations
    return build_catalogue(all_locations)


def ensure_progress_entries(record: PlayerRecord, catalogue: AchievementCatalogue) -> bool:
    added = False
    for achievement_id in catalogue.achievements:
        if achievement_id not in record.achievements:
            record.achievements[achievement_id] = AchievementProgress(achievement_id=achievement_id)
            added = True
    return added


class AchievementService(BaseService):
    def __init__(self, notifier=None, event_publisher=None, progression_service: ProgressionService | None = None) -> None:
        super().__init__(notifier=notifier, event_publisher=event_publisher)
        self.progression_service = progression_service or ProgressionService(
            notifier=notifier,
            event_publisher=event_publisher,
        )

    def initialize_achievements(
        self,
        record: Optional[PlayerRecord],
        all_locations: Union[AchievementCatalogue, Sequence[Location]],
    ) -> Optional[PlayerRecord]:
        if record is None:
            return None
        catalogue = _as_catalogue(all_locations)
        if all(achievement_id in record.achievements for achievement_id in catalogue.achievements):
            return record
        updated = self._working_copy(record)
        ensure_progress_entries(updated, catalogue)
        return updated

    def on_location_discovered(
        self,
        record: Optional[PlayerRecord],
        location: Location,
        all_locations: Union[AchievementCatalogue, Sequence[Location]],
    ) -> Optional[PlayerRecord]:
        if record is None:
            return None
        catalogue = _as_catalogue(all_locations)
        if catalogue.location(location.id) is None:
            self._error("Unknown location", f"{location.name} is not part of the known world.")
            return record
        updated = self._working_copy(record)
        if not self.apply_discovery(updated, location, catalogue):
            return record
        return updated

    def apply_discovery(self, record: PlayerRecord, location: Location, catalogue: AchievementCatalogue) -> bool:
        """Record a discovery in place; returns False when nothing changed (a replay)."""
        changed = ensure_progress_entries(record, catalogue)
        if location.id not in record.discovered_location_ids:
            record.discovered_location_ids.append(location.id)
            record.ledger.locations_discovered += 1
            changed = True
            self._success(f"Discovered {location.name}", f"{location.realm}, {location.continent}")
            self._publish(
                LocationDiscoveredEvent(
                    player_id=record.player_id,
                    location_id=location.id,
                    realm=location.realm,
                    continent=location.continent,
                )
            )

        discovered = set(record.discovered_location_ids)
        changed |= self._advance(record, catalogue, territory_id(location.id), 1.0)

        realm_rows = catalogue.territories_in_realm(location.realm)
        realm_found = sum(1 for row in realm_rows if row.id in discovered)
        changed |= self._advance(record, catalogue, realm_id(location.realm), realm_found / len(realm_rows))

        realms = catalogue.realms_in_continent(location.continent)
        realms_done = sum(
            1
            for realm in realms
            if all(row.id in discovered for row in catalogue.territories_in_realm(realm))
        )
        changed |= self._advance(record, catalogue, continent_id(location.continent), realms_done / len(realms))

        world_found = sum(1 for row in catalogue.locations if row.id in discovered)
        changed |= self._advance(record, catalogue, META_ACHIEVEMENT_ID, world_found / len(catalogue.locations))
        return changed

    def _advance(self, record: PlayerRecord, catalogue: AchievementCatalogue, achievement_id: str, value: float) -> bool:
        achievement = catalogue.get(achievement_id)
        if achievement is None:
            return False
        progress = record.achievements.setdefault(achievement_id, AchievementProgress(achievement_id=achievement_id))
        before = progress.progress
        completed_now = progress.advance(value)
        if completed_now:
            self._grant(record, achievement)
        return completed_now or progress.progress != before

    def _grant(self, record: PlayerRecord, achievement: Achievement) -> None:
        record.ledger.achievements_unlocked += 1
        logger.debug("Achievement %s completed by player %s", achievement.id, record.player_id)
        self._success(f"Achievement unlocked: {achievement.title}", achievement.description)
        self.progression_service.apply_experience(record, achievement.xp_reward, achievement.title)
        self.progression_service.apply_gold(record, achievement.gold_reward, achievement.title)
        self._publish(
            AchievementCompletedEvent(
                player_id=record.player_id,
                achievement_id=achievement.id,
                kind=achievement.kind.value,
                xp_reward=achievement.xp_reward,
                gold_reward=achievement.gold_reward,
            )
        )

    def tracked_ids(self, record: PlayerRecord) -> list[str]:
        return [key for key, row in record.achievements.items() if row.is_tracked]

    def track_achievement(self, record: Optional[PlayerRecord], achievement_id: str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        progress = record.achievements.get(achievement_id)
        if progress is None:
            self._error("Unknown achievement", f"No achievement with id {achievement_id}.")
            return record
        if progress.is_tracked:
            return record
        if len(self.tracked_ids(record)) >= MAX_TRACKED_ACHIEVEMENTS:
            self._warning(
                "Tracking limit reached",
                f"You can track at most {MAX_TRACKED_ACHIEVEMENTS} achievements at once.",
            )
            return record
        updated = self._working_copy(record)
        updated.achievements[achievement_id].is_tracked = True
        return updated

    def untrack_achievement(self, record: Optional[PlayerRecord], achievement_id: str) -> Optional[PlayerRecord]:
        if record is None:
            return None
        progress = record.achievements.get(achievement_id)
        if progress is None:
            self._error("Unknown achievement", f"No achievement with id {achievement_id}.")
            return record
        if not progress.is_tracked:
            return record
        updated = self._working_copy(record)
        updated.achievements[achievement_id].is_tracked = False
        return updated
