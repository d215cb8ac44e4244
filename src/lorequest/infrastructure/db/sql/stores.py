from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from lorequest.application.mappers.player_mapper import (
    board_to_payload,
    payload_to_board,
    payload_to_record,
    record_to_payload,
)
from lorequest.domain.models.player import PlayerRecord
from lorequest.domain.models.quest import QuestBoard
from lorequest.domain.repositories import ProfileStore, QuestStore


logger = logging.getLogger(__name__)

TABLES = ("player_profile", "quest_board")


def ensure_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        for table in TABLES:
            conn.execute(
                text(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        player_id VARCHAR(64) NOT NULL PRIMARY KEY,
                        payload_json TEXT NOT NULL,
                        updated_at VARCHAR(40) NOT NULL
                    )
                    """
                )
            )


def _upsert_statement(dialect: str, table: str):
    if dialect == "mysql":
        return text(
            f"""
            INSERT INTO {table} (player_id, payload_json, updated_at)
            VALUES (:pid, :payload, :updated_at)
            ON DUPLICATE KEY UPDATE
                payload_json = VALUES(payload_json),
                updated_at = VALUES(updated_at)
            """
        )
    return text(
        f"""
        INSERT INTO {table} (player_id, payload_json, updated_at)
        VALUES (:pid, :payload, :updated_at)
        ON CONFLICT(player_id) DO UPDATE SET
            payload_json = excluded.payload_json,
            updated_at = excluded.updated_at
        """
    )


class _JsonBlobStore:
    table = ""

    def __init__(self, session_factory: Callable) -> None:
        self._session_factory = session_factory

    def _load(self, player_id: str) -> Optional[dict]:
        with self._session_factory() as session:
            row = session.execute(
                text(f"SELECT payload_json FROM {self.table} WHERE player_id = :pid"),
                {"pid": player_id},
            ).first()
        if row is None:
            return None
        try:
            payload = json.loads(row.payload_json)
        except (TypeError, ValueError):
            logger.warning("Unreadable JSON payload treated as missing", extra={"table": self.table, "player_id": player_id})
            return None
        if not isinstance(payload, dict):
            logger.warning("Non-object payload treated as missing", extra={"table": self.table, "player_id": player_id})
            return None
        return payload

    def _save(self, player_id: str, payload: dict) -> None:
        with self._session_factory.begin() as session:
            dialect = session.bind.dialect.name if session.bind is not None else "sqlite"
            session.execute(
                _upsert_statement(dialect, self.table),
                {
                    "pid": player_id,
                    "payload": json.dumps(payload, sort_keys=True),
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
            )


class SqlProfileStore(_JsonBlobStore, ProfileStore):
    table = "player_profile"

    def get(self, player_id: str) -> Optional[PlayerRecord]:
        payload = self._load(player_id)
        if payload is None:
            return None
        try:
            return payload_to_record(payload)
        except ValueError:
            logger.warning("Malformed player payload treated as missing", extra={"player_id": player_id})
            return None

    def put(self, record: PlayerRecord) -> None:
        self._save(record.player_id, record_to_payload(record))


class SqlQuestStore(_JsonBlobStore, QuestStore):
    table = "quest_board"

    def get(self, player_id: str) -> Optional[QuestBoard]:
        payload = self._load(player_id)
        if payload is None:
            return None
        try:
            return payload_to_board(payload)
        except ValueError:
            logger.warning("Malformed quest board payload treated as missing", extra={"player_id": player_id})
            return None

    def put(self, board: QuestBoard) -> None:
        self._save(board.player_id, board_to_payload(board))
