from __future__ import annotations

import copy
from typing import Dict, Optional

from lorequest.domain.models.player import PlayerRecord
from lorequest.domain.models.quest import QuestBoard
from lorequest.domain.repositories import ProfileStore, QuestStore


class InMemoryProfileStore(ProfileStore):
    """Last-write-wins dict store; records are copied in and out."""

    def __init__(self) -> None:
        self._records: Dict[str, PlayerRecord] = {}
        self.put_count = 0

    def get(self, player_id: str) -> Optional[PlayerRecord]:
        record = self._records.get(player_id)
        return copy.deepcopy(record) if record is not None else None

    def put(self, record: PlayerRecord) -> None:
        self._records[record.player_id] = copy.deepcopy(record)
        self.put_count += 1


class InMemoryQuestStore(QuestStore):
    def __init__(self) -> None:
        self._boards: Dict[str, QuestBoard] = {}

    def get(self, player_id: str) -> Optional[QuestBoard]:
        board = self._boards.get(player_id)
        return copy.deepcopy(board) if board is not None else None

    def put(self, board: QuestBoard) -> None:
        self._boards[board.player_id] = copy.deepcopy(board)
