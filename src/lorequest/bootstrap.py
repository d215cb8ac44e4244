from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from lorequest.application.services.balance_tables import DEFAULT_LOCATIONS, ENEMY_TURN_DELAY_S
from lorequest.application.services.event_bus import EventBus
from lorequest.application.services.game_service import GameService
from lorequest.application.services.turn_scheduler import SleepTurnScheduler, TurnScheduler
from lorequest.domain.models.achievement import Location
from lorequest.domain.notifications import NotificationSink
from lorequest.infrastructure.db.sql.connection import build_engine, build_session_factory
from lorequest.infrastructure.db.sql.stores import SqlProfileStore, SqlQuestStore, ensure_schema
from lorequest.infrastructure.inmemory.stores import InMemoryProfileStore, InMemoryQuestStore
from lorequest.infrastructure.notifications import LoggingNotificationSink, RichConsoleNotificationSink


logger = logging.getLogger(__name__)

ENV_PREFIX = "LOREQUEST_"
NOTIFIER_CHOICES = ("console", "log", "none")


def _float_or_default(raw: Optional[str], default: float) -> float:
    if raw is None or not str(raw).strip():
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class EngineSettings:
    database_url: Optional[str] = None
    enemy_turn_delay_s: float = ENEMY_TURN_DELAY_S
    combat_seed: Optional[int] = None
    notifier: str = "console"
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        notifier = str(env.get(f"{ENV_PREFIX}NOTIFIER", "console") or "console").strip().lower()
        if notifier not in NOTIFIER_CHOICES:
            notifier = "console"
        database_url = str(env.get(f"{ENV_PREFIX}DATABASE_URL", "") or "").strip() or None
        return cls(
            database_url=database_url,
            enemy_turn_delay_s=_float_or_default(env.get(f"{ENV_PREFIX}ENEMY_TURN_DELAY_S"), ENEMY_TURN_DELAY_S),
            combat_seed=_int_or_none(env.get(f"{ENV_PREFIX}COMBAT_SEED")),
            notifier=notifier,
            log_level=str(env.get(f"{ENV_PREFIX}LOG_LEVEL", "WARNING") or "WARNING").strip().upper(),
        )


def build_notifier(kind: str) -> Optional[NotificationSink]:
    if kind == "log":
        return LoggingNotificationSink()
    if kind == "none":
        return None
    return RichConsoleNotificationSink()


def build_stores(database_url: Optional[str]):
    if database_url:
        try:
            engine = build_engine(database_url)
            ensure_schema(engine)
            session_factory = build_session_factory(engine)
            return SqlProfileStore(session_factory), SqlQuestStore(session_factory)
        except SQLAlchemyError as exc:
            logger.warning(
                "Database unavailable, falling back to in-memory stores",
                extra={"reason": str(exc)},
            )
    return InMemoryProfileStore(), InMemoryQuestStore()


def create_game_service(
    settings: Optional[EngineSettings] = None,
    *,
    notifier: Optional[NotificationSink] = None,
    scheduler: Optional[TurnScheduler] = None,
    locations: Sequence[Location] = DEFAULT_LOCATIONS,
    event_bus: Optional[EventBus] = None,
) -> GameService:
    settings = settings or EngineSettings.from_env()
    profile_store, quest_store = build_stores(settings.database_url)
    rng = random.Random(settings.combat_seed) if settings.combat_seed is not None else random.Random()
    return GameService(
        profile_store,
        quest_store,
        locations=locations,
        notifier=notifier if notifier is not None else build_notifier(settings.notifier),
        event_publisher=event_bus or EventBus(),
        scheduler=scheduler or SleepTurnScheduler(),
        enemy_turn_delay_s=settings.enemy_turn_delay_s,
        rng=rng,
    )
