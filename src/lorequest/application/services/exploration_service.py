from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from lorequest.application.services.balance_tables import (
    EARTH_RADIUS_KM,
    KM_PER_MILE,
    MAX_DISTANCE_DELTA_KM,
    WALKING_XP_PER_KM,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.progression_service import ProgressionService
from lorequest.domain.models.achievement import Location
from lorequest.domain.models.player import PlayerRecord


logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    lat1, lon1 = (math.radians(float(value)) for value in a)
    lat2, lon2 = (math.radians(float(value)) for value in b)
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def discoverable_locations(
    position: Coordinates,
    locations: Iterable[Location],
    discovered_ids: Sequence[str] = (),
) -> List[Location]:
    known = set(discovered_ids)
    found = []
    for location in locations:
        if location.id in known:
            continue
        distance_km = haversine_km(position, (location.latitude, location.longitude))
        if distance_km <= float(location.radius_miles) * KM_PER_MILE:
            found.append(location)
    return found


class ExplorationService(BaseService):
    def __init__(self, notifier=None, event_publisher=None, progression_service: ProgressionService | None = None) -> None:
        super().__init__(notifier=notifier, event_publisher=event_publisher)
        self.progression_service = progression_service or ProgressionService(
            notifier=notifier,
            event_publisher=event_publisher,
        )

    def record_distance(self, record: Optional[PlayerRecord], distance_km: float, now: datetime) -> Optional[PlayerRecord]:
        if record is None:
            return None
        distance_km = float(distance_km)
        if not 0 < distance_km < MAX_DISTANCE_DELTA_KM:
            logger.warning(
                "Ignoring implausible distance delta",
                extra={"player_id": record.player_id, "distance_km": distance_km},
            )
            return record
        updated = self._working_copy(record)
        self.apply_distance(updated, distance_km, now)
        return updated

    def apply_distance(self, record: PlayerRecord, distance_km: float, now: datetime) -> int:
        """Bank a walking delta; returns walking XP awarded by this call."""
        record.ledger.distance_travelled_km += distance_km
        walking = record.walking
        walking.pending_km += distance_km

        today = now.date()
        if walking.last_award_date == today or walking.pending_km < 1:
            return 0
        whole_km = int(math.floor(walking.pending_km))
        xp = whole_km * WALKING_XP_PER_KM
        walking.pending_km -= whole_km
        walking.earned_xp += xp
        walking.last_award_date = today
        record.ledger.walking_xp_earned += xp
        logger.debug("Walking reward of %s XP for player %s", xp, record.player_id)
        self.progression_service.apply_experience(record, xp, f"walking {whole_km} km")
        return xp
