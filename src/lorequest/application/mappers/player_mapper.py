from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from lorequest.domain.models.achievement import AchievementProgress
from lorequest.domain.models.enemy import AttackType
from lorequest.domain.models.item import (
    EquipmentSlot,
    EquipmentStats,
    InventoryItem,
    ItemSpec,
    ItemType,
    StatBonus,
    UseEffect,
)
from lorequest.domain.models.player import (
    CoreStats,
    LifeState,
    PlayerClass,
    PlayerRecord,
    StatsLedger,
    WalkingLedger,
)
from lorequest.domain.models.quest import Quest, QuestBoard, QuestObjectiveKind, QuestScope


Payload = Dict[str, Any]


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromisoformat(str(value))


def _parse_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    return date.fromisoformat(str(value))


def equipment_stats_to_payload(stats: EquipmentStats | None) -> Payload | None:
    if stats is None:
        return None
    return {
        "slot": stats.slot.value,
        "armor": stats.armor,
        "stat_bonuses": [{"attribute": bonus.attribute, "value": bonus.value} for bonus in stats.stat_bonuses],
        "required_class": stats.required_class,
        "required_level": stats.required_level,
        "attack_type": stats.attack_type.value if stats.attack_type else None,
    }


def payload_to_equipment_stats(payload: Payload | None) -> EquipmentStats | None:
    if not payload:
        return None
    slot = EquipmentSlot.normalize(payload.get("slot"))
    if slot is None:
        raise ValueError(f"Unknown equipment slot: {payload.get('slot')!r}")
    attack_type = payload.get("attack_type")
    required_level = payload.get("required_level")
    return EquipmentStats(
        slot=slot,
        armor=int(payload.get("armor", 0) or 0),
        stat_bonuses=tuple(
            StatBonus(str(row["attribute"]), int(row["value"])) for row in payload.get("stat_bonuses", []) or []
        ),
        required_class=payload.get("required_class"),
        required_level=int(required_level) if required_level is not None else None,
        attack_type=AttackType.normalize(attack_type) if attack_type else None,
    )


def item_to_payload(item: InventoryItem) -> Payload:
    return {
        "id": item.id,
        "item_type": item.item_type.value,
        "name": item.name,
        "quantity": item.quantity,
        "description": item.description,
        "use_effect": item.use_effect.value,
        "value": item.value,
        "is_equippable": item.is_equippable,
        "equipment_stats": equipment_stats_to_payload(item.equipment_stats),
    }


def payload_to_item(payload: Payload) -> InventoryItem:
    return InventoryItem(
        id=str(payload["id"]),
        item_type=ItemType.normalize(payload.get("item_type")),
        name=str(payload["name"]),
        quantity=int(payload.get("quantity", 1)),
        description=str(payload.get("description", "") or ""),
        use_effect=UseEffect.normalize(payload.get("use_effect")),
        value=float(payload.get("value", 0) or 0),
        is_equippable=bool(payload.get("is_equippable", False)),
        equipment_stats=payload_to_equipment_stats(payload.get("equipment_stats")),
    )


def item_spec_to_payload(spec: ItemSpec | None) -> Payload | None:
    if spec is None:
        return None
    return {
        "name": spec.name,
        "item_type": spec.item_type.value,
        "description": spec.description,
        "use_effect": spec.use_effect.value,
        "value": spec.value,
        "equipment_stats": equipment_stats_to_payload(spec.equipment_stats),
    }


def payload_to_item_spec(payload: Payload | None) -> ItemSpec | None:
    if not payload:
        return None
    return ItemSpec(
        name=str(payload["name"]),
        item_type=ItemType.normalize(payload.get("item_type")),
        description=str(payload.get("description", "") or ""),
        use_effect=UseEffect.normalize(payload.get("use_effect")),
        value=float(payload.get("value", 0) or 0),
        equipment_stats=payload_to_equipment_stats(payload.get("equipment_stats")),
    )


def record_to_payload(record: PlayerRecord) -> Payload:
    return {
        "player_id": record.player_id,
        "name": record.name,
        "player_class": record.player_class.value if record.player_class else None,
        "stats": {
            "strength": record.stats.strength,
            "intelligence": record.stats.intelligence,
            "dexterity": record.stats.dexterity,
        },
        "resources": {
            "health": record.health,
            "max_health": record.max_health,
            "mana": record.mana,
            "max_mana": record.max_mana,
            "stamina": record.stamina,
            "max_stamina": record.max_stamina,
            "energy": record.energy,
            "max_energy": record.max_energy,
        },
        "level": record.level,
        "experience": record.experience,
        "gold": record.gold,
        "inventory": [item_to_payload(item) for item in record.inventory],
        "equipment": {slot.value: item_to_payload(item) for slot, item in record.equipment.items()},
        "armor": record.armor,
        "stat_bonuses": dict(record.stat_bonuses),
        "achievements": [
            {
                "achievement_id": row.achievement_id,
                "progress": row.progress,
                "completed": row.completed,
                "is_tracked": row.is_tracked,
            }
            for row in record.achievements.values()
        ],
        "active_quest_ids": sorted(record.active_quest_ids),
        "completed_quest_ids": sorted(record.completed_quest_ids),
        "discovered_location_ids": list(record.discovered_location_ids),
        "life_state": record.life_state.value,
        "last_regeneration_at": _iso(record.last_regeneration_at),
        "last_energy_regen_at": _iso(record.last_energy_regen_at),
        "ledger": dict(vars(record.ledger)),
        "walking": {
            "pending_km": record.walking.pending_km,
            "earned_xp": record.walking.earned_xp,
            "last_award_date": _iso(record.walking.last_award_date),
        },
    }


def payload_to_record(payload: Payload) -> PlayerRecord:
    """Rebuild a record; any structural problem surfaces as ``ValueError``."""
    try:
        stats = payload.get("stats", {}) or {}
        resources = payload.get("resources", {}) or {}
        equipment = {}
        for slot_key, item_payload in (payload.get("equipment", {}) or {}).items():
            slot = EquipmentSlot.normalize(slot_key)
            if slot is None:
                raise ValueError(f"Unknown equipment slot: {slot_key!r}")
            equipment[slot] = payload_to_item(item_payload)
        achievements = {}
        for row in payload.get("achievements", []) or []:
            progress = AchievementProgress(
                achievement_id=str(row["achievement_id"]),
                progress=float(row.get("progress", 0.0)),
                completed=bool(row.get("completed", False)),
                is_tracked=bool(row.get("is_tracked", False)),
            )
            achievements[progress.achievement_id] = progress
        walking = payload.get("walking", {}) or {}
        life_state = str(payload.get("life_state", LifeState.ALIVE.value))
        return PlayerRecord(
            player_id=str(payload["player_id"]),
            name=str(payload["name"]),
            stats=CoreStats(
                strength=int(stats.get("strength", 1)),
                intelligence=int(stats.get("intelligence", 1)),
                dexterity=int(stats.get("dexterity", 1)),
            ),
            health=int(resources.get("health", 100)),
            max_health=int(resources.get("max_health", 100)),
            mana=int(resources.get("mana", 100)),
            max_mana=int(resources.get("max_mana", 100)),
            stamina=int(resources.get("stamina", 100)),
            max_stamina=int(resources.get("max_stamina", 100)),
            energy=int(resources.get("energy", 5)),
            max_energy=int(resources.get("max_energy", 5)),
            level=int(payload.get("level", 1)),
            experience=int(payload.get("experience", 0)),
            gold=int(payload.get("gold", 0)),
            player_class=PlayerClass.normalize(payload.get("player_class")),
            inventory=[payload_to_item(row) for row in payload.get("inventory", []) or []],
            equipment=equipment,
            armor=int(payload.get("armor", 0)),
            stat_bonuses={str(key): int(value) for key, value in (payload.get("stat_bonuses", {}) or {}).items()},
            achievements=achievements,
            active_quest_ids=set(payload.get("active_quest_ids", []) or []),
            completed_quest_ids=set(payload.get("completed_quest_ids", []) or []),
            discovered_location_ids=[str(value) for value in payload.get("discovered_location_ids", []) or []],
            life_state=LifeState.DEAD if life_state == LifeState.DEAD.value else LifeState.ALIVE,
            last_regeneration_at=_parse_datetime(payload.get("last_regeneration_at")),
            last_energy_regen_at=_parse_datetime(payload.get("last_energy_regen_at")),
            ledger=StatsLedger(**(payload.get("ledger", {}) or {})),
            walking=WalkingLedger(
                pending_km=float(walking.get("pending_km", 0.0)),
                earned_xp=int(walking.get("earned_xp", 0)),
                last_award_date=_parse_date(walking.get("last_award_date")),
            ),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed player payload: {exc}") from exc


def quest_to_payload(quest: Quest) -> Payload:
    return {
        "id": quest.id,
        "scope": quest.scope.value,
        "title": quest.title,
        "objective": quest.objective.value,
        "target_count": quest.target_count,
        "progress": quest.progress,
        "completed": quest.completed,
        "xp_reward": quest.xp_reward,
        "gold_reward": quest.gold_reward,
        "item_reward": item_spec_to_payload(quest.item_reward),
        "expires_at": _iso(quest.expires_at),
        "description": quest.description,
    }


def payload_to_quest(payload: Payload) -> Quest:
    objective = QuestObjectiveKind.normalize(payload.get("objective"))
    if objective is None:
        raise ValueError(f"Unknown quest objective: {payload.get('objective')!r}")
    return Quest(
        id=str(payload["id"]),
        scope=QuestScope.normalize(payload.get("scope")),
        title=str(payload.get("title", "")),
        objective=objective,
        target_count=float(payload.get("target_count", 1)),
        progress=float(payload.get("progress", 0)),
        completed=bool(payload.get("completed", False)),
        xp_reward=int(payload.get("xp_reward", 0)),
        gold_reward=int(payload.get("gold_reward", 0)),
        item_reward=payload_to_item_spec(payload.get("item_reward")),
        expires_at=_parse_datetime(payload.get("expires_at")),
        description=str(payload.get("description", "") or ""),
    )


def board_to_payload(board: QuestBoard) -> Payload:
    return {
        "player_id": board.player_id,
        "quests": [quest_to_payload(quest) for quest in board.quests.values()],
        "last_generated_at": _iso(board.last_generated_at),
        "daily_completed": board.daily_completed,
        "weekly_completed": board.weekly_completed,
        "monthly_completed": board.monthly_completed,
        "total_completed": board.total_completed,
        "tutorial_rewarded": board.tutorial_rewarded,
    }


def payload_to_board(payload: Payload) -> QuestBoard:
    try:
        quests = [payload_to_quest(row) for row in payload.get("quests", []) or []]
        return QuestBoard(
            player_id=str(payload["player_id"]),
            quests={quest.id: quest for quest in quests},
            last_generated_at=_parse_datetime(payload.get("last_generated_at")),
            daily_completed=int(payload.get("daily_completed", 0)),
            weekly_completed=int(payload.get("weekly_completed", 0)),
            monthly_completed=int(payload.get("monthly_completed", 0)),
            total_completed=int(payload.get("total_completed", 0)),
            tutorial_rewarded=bool(payload.get("tutorial_rewarded", False)),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed quest board payload: {exc}") from exc
