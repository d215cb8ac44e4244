from abc import ABC, abstractmethod
from typing import Optional

from lorequest.domain.models.player import PlayerRecord
from lorequest.domain.models.quest import QuestBoard


class ProfileStore(ABC):
    @abstractmethod
    def get(self, player_id: str) -> Optional[PlayerRecord]:
        raise NotImplementedError

    @abstractmethod
    def put(self, record: PlayerRecord) -> None:
        raise NotImplementedError


class QuestStore(ABC):
    @abstractmethod
    def get(self, player_id: str) -> Optional[QuestBoard]:
        raise NotImplementedError

    @abstractmethod
    def put(self, board: QuestBoard) -> None:
        raise NotImplementedError
