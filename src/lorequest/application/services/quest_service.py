from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from lorequest.application.services.balance_tables import (
    QUEST_TEMPLATES,
    TUTORIAL_REWARD_GOLD,
    TUTORIAL_REWARD_XP,
    TUTORIAL_STEPS,
)
from lorequest.application.services.base_service import BaseService
from lorequest.application.services.inventory_service import add_units
from lorequest.application.services.progression_service import ProgressionService
from lorequest.domain.events import QuestCompletedEvent
from lorequest.domain.models.player import PlayerRecord
from lorequest.domain.models.quest import Quest, QuestBoard, QuestObjectiveKind, QuestScope, QuestTemplate


logger = logging.getLogger(__name__)

TUTORIAL_QUEST_ID = "starter-tutorial"

QuestResult = Tuple[Optional[PlayerRecord], Optional[QuestBoard]]


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(moment: datetime) -> datetime:
    """Weeks begin on Sunday."""
    days_since_sunday = (moment.weekday() + 1) % 7
    return day_start(moment) - timedelta(days=days_since_sunday)


def month_start(moment: datetime) -> datetime:
    return day_start(moment).replace(day=1)


def next_month_start(moment: datetime) -> datetime:
    first = month_start(moment)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)


def period_window(scope: QuestScope, now: datetime) -> Tuple[datetime, datetime, str]:
    """Start, expiry and id key of the calendar window containing ``now``."""
    if scope == QuestScope.DAILY:
        start = day_start(now)
        return start, start + timedelta(days=1), start.strftime("%Y-%m-%d")
    if scope == QuestScope.WEEKLY:
        start = week_start(now)
        return start, start + timedelta(days=7), start.strftime("%Y-%m-%d")
    if scope == QuestScope.MONTHLY:
        start = month_start(now)
        return start, next_month_start(now), start.strftime("%Y-%m")
    raise ValueError(f"{scope.value} quests are not time based")


def build_period_quests(scope: QuestScope, now: datetime) -> List[Quest]:
    _, expires_at, key = period_window(scope, now)
    return [
        _quest_from_template(f"{scope.value}-{template.slug}-{key}", scope, template, expires_at)
        for template in QUEST_TEMPLATES[scope]
    ]


def build_tutorial_steps() -> List[Quest]:
    return [
        _quest_from_template(f"tutorial-{template.slug}", QuestScope.TUTORIAL, template, None)
        for template in TUTORIAL_STEPS
    ]


def _quest_from_template(quest_id: str, scope: QuestScope, template: QuestTemplate, expires_at: Optional[datetime]) -> Quest:
    return Quest(
        id=quest_id,
        scope=scope,
        title=template.title,
        objective=template.objective,
        target_count=template.target_count,
        xp_reward=template.xp_reward,
        gold_reward=template.gold_reward,
        item_reward=template.item_reward,
        expires_at=expires_at,
        description=template.description,
    )


def _crossed(scope: QuestScope, last: datetime, now: datetime) -> bool:
    return period_window(scope, last)[0] != period_window(scope, now)[0]


class QuestService(BaseService):
    def __init__(self, notifier=None, event_publisher=None, progression_service: ProgressionService | None = None) -> None:
        super().__init__(notifier=notifier, event_publisher=event_publisher)
        self.progression_service = progression_service or ProgressionService(
            notifier=notifier,
            event_publisher=event_publisher,
        )

    def refresh_quests(self, record: Optional[PlayerRecord], board: Optional[QuestBoard], now: datetime) -> QuestResult:
        """Regenerate every quest set whose calendar window has rolled over."""
        if record is None:
            return None, board
        if board is None:
            board = QuestBoard(player_id=record.player_id)
        updated_record = self._working_copy(record)
        updated_board = self._working_copy(board)

        last = updated_board.last_generated_at
        regenerated: List[QuestScope] = []
        for scope in (QuestScope.DAILY, QuestScope.WEEKLY, QuestScope.MONTHLY):
            if last is None or _crossed(scope, last, now):
                updated_board.replace_scope(scope, build_period_quests(scope, now))
                self._reset_counter(updated_board, scope)
                regenerated.append(scope)
        if last is None and not updated_board.by_scope(QuestScope.TUTORIAL):
            updated_board.replace_scope(QuestScope.TUTORIAL, build_tutorial_steps())
            if updated_record.player_class is not None:
                self._apply_activity(updated_record, updated_board, QuestObjectiveKind.CHOOSE_CLASS, 1, now)
        if regenerated:
            updated_board.last_generated_at = now
            logger.debug(
                "Regenerated %s quests for player %s",
                ",".join(scope.value for scope in regenerated),
                record.player_id,
            )

        active_ids = {quest.id for quest in updated_board.active(now)}
        updated_record.active_quest_ids = active_ids
        record_changed = active_ids != record.active_quest_ids or updated_record.completed_quest_ids != record.completed_quest_ids
        return (
            updated_record if record_changed else record,
            updated_board if regenerated else board,
        )

    def update_quest_progress(
        self,
        record: Optional[PlayerRecord],
        board: Optional[QuestBoard],
        quest_id: str,
        delta: float,
        now: Optional[datetime] = None,
    ) -> QuestResult:
        if record is None:
            return None, board
        now = now or datetime.now()
        quest = board.quests.get(quest_id) if board is not None else None
        if quest is None:
            self._error("Unknown quest", f"No quest with id {quest_id}.")
            return record, board
        if quest.completed or delta <= 0:
            return record, board
        if quest.is_expired(now):
            self._warning("Quest expired", f"{quest.title} is no longer active.")
            return record, board
        updated_record = self._working_copy(record)
        updated_board = self._working_copy(board)
        self._apply_progress(updated_record, updated_board, updated_board.quests[quest_id], delta)
        return updated_record, updated_board

    def record_activity(
        self,
        record: Optional[PlayerRecord],
        board: Optional[QuestBoard],
        kind: QuestObjectiveKind,
        amount: float,
        now: datetime,
    ) -> QuestResult:
        """Advance every open quest whose objective matches ``kind``."""
        if record is None or board is None or amount <= 0:
            return record, board
        if not any(quest.objective == kind and quest.is_open(now) for quest in board.quests.values()):
            return record, board
        updated_record = self._working_copy(record)
        updated_board = self._working_copy(board)
        self._apply_activity(updated_record, updated_board, kind, amount, now)
        return updated_record, updated_board

    def _apply_activity(self, record: PlayerRecord, board: QuestBoard, kind: QuestObjectiveKind, amount: float, now: datetime) -> None:
        for quest in list(board.quests.values()):
            if quest.objective == kind and quest.is_open(now):
                self._apply_progress(record, board, quest, amount)

    def _apply_progress(self, record: PlayerRecord, board: QuestBoard, quest: Quest, delta: float) -> None:
        if not quest.advance(delta):
            return
        record.active_quest_ids.discard(quest.id)
        record.completed_quest_ids.add(quest.id)
        if quest.scope == QuestScope.TUTORIAL:
            self._success("Tutorial step complete", quest.title)
            self._maybe_finish_tutorial(record, board)
            return
        self._grant(record, board, quest.id, quest.scope, quest.title, quest.xp_reward, quest.gold_reward)
        if quest.item_reward is not None:
            add_units(record, quest.item_reward, 1)
            self._success("Quest item received", quest.item_reward.name)

    def _maybe_finish_tutorial(self, record: PlayerRecord, board: QuestBoard) -> None:
        steps = board.by_scope(QuestScope.TUTORIAL)
        if board.tutorial_rewarded or not steps or not all(step.completed for step in steps):
            return
        board.tutorial_rewarded = True
        self._grant(record, board, TUTORIAL_QUEST_ID, QuestScope.TUTORIAL, "Tutorial", TUTORIAL_REWARD_XP, TUTORIAL_REWARD_GOLD)

    def _grant(
        self,
        record: PlayerRecord,
        board: QuestBoard,
        quest_id: str,
        scope: QuestScope,
        title: str,
        xp: int,
        gold: int,
    ) -> None:
        if scope == QuestScope.DAILY:
            board.daily_completed += 1
        elif scope == QuestScope.WEEKLY:
            board.weekly_completed += 1
        elif scope == QuestScope.MONTHLY:
            board.monthly_completed += 1
        board.total_completed += 1
        record.ledger.quests_completed += 1
        record.completed_quest_ids.add(quest_id)
        logger.debug("Quest %s completed by player %s", quest_id, record.player_id)
        self._success(f"Quest complete: {title}", f"Rewards: {xp} XP, {gold} gold.")
        if xp > 0:
            record.ledger.quest_xp_earned += int(xp)
            self.progression_service.apply_experience(record, xp, title)
        if gold > 0:
            record.ledger.quest_gold_earned += int(gold)
            self.progression_service.apply_gold(record, gold, title)
        self._publish(
            QuestCompletedEvent(
                player_id=record.player_id,
                quest_id=quest_id,
                scope=scope.value,
                xp_reward=int(xp),
                gold_reward=int(gold),
            )
        )

    @staticmethod
    def _reset_counter(board: QuestBoard, scope: QuestScope) -> None:
        if scope == QuestScope.DAILY:
            board.daily_completed = 0
        elif scope == QuestScope.WEEKLY:
            board.weekly_completed = 0
        elif scope == QuestScope.MONTHLY:
            board.monthly_completed = 0
