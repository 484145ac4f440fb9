"""Move normalizer and machine-item synthesis."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .naming import normalize_text
from .raw import RawMove, pick_text

STATUS_CLASS = "status"
IGNORED_AILMENTS = frozenset({"none", "unknown"})

FLAG_FIELDS = (
    ("isContact", "contact"),
    ("isSound", "sound"),
    ("isPunch", "punch"),
    ("isBite", "bite"),
    ("isPowder", "powder"),
    ("isProtectAffected", "protect"),
)

MACHINE_KINDS = ("tm", "hm", "tr")

# kind -> (category, price, sprite, consumable)
MACHINE_ITEM_RULES: Dict[str, tuple] = {
    "tm": ("tm", 3000, "/sprites/items/tm.png", True),
    "hm": ("hm", None, "/sprites/items/hm.png", False),
    "tr": ("tr", 5000, "/sprites/items/tr.png", True),
    "other": ("tm", None, "/sprites/items/machine.png", True),
}

MACHINE_ITEM_DESCRIPTION = "A technical machine that teaches a move to a compatible Pokémon."
MACHINE_ITEM_EFFECT = "Teaches the associated move."


def _chance(value: Optional[float]) -> Optional[float]:
    """A chance tier applies only when it lies in (0, 100]."""
    if value is None or not 0 < value <= 100:
        return None
    return value


def resolve_status(move: RawMove) -> tuple:
    """Return ``(statusAilment, statusChance)``.

    Chance precedence: ailment chance, then effect chance, then 100 for a
    pure status move.
    """
    ailment = move.ailment
    if not ailment or ailment in IGNORED_AILMENTS:
        return None, None
    chance = _chance(move.ailment_chance)
    if chance is None:
        chance = _chance(move.effect_chance)
    if chance is None and move.damage_class == STATUS_CLASS:
        chance = 100
    return ailment, chance


def resolve_stat_changes(move: RawMove) -> tuple:
    """Return ``(statChanges, statChangeChance)`` with the same precedence."""
    changes = [{"stat": stat, "stages": stages} for stat, stages in move.stat_changes]
    if not changes:
        return changes, None
    chance = _chance(move.stat_chance)
    if chance is None:
        chance = _chance(move.effect_chance)
    if chance is None and move.damage_class == STATUS_CLASS:
        chance = 100
    return changes, chance


def machine_kind(item_name: str) -> str:
    prefix = item_name[:2].lower()
    return prefix if prefix in MACHINE_KINDS else "other"


def lookup_machine(client: Any, move: RawMove, version_group: str) -> Optional[Dict[str, str]]:
    """Find the machine teaching ``move`` in ``version_group``.

    Fetches the machine resource of the first matching entry. Returns None
    when no entry for that version group names an item.
    """
    for vg, machine_url in move.machines:
        if vg != version_group:
            continue
        machine = client.get_json(machine_url)
        item = machine.get("item") if isinstance(machine, dict) else None
        item_name = item.get("name") if isinstance(item, dict) else None
        if not isinstance(item_name, str) or not item_name:
            continue
        return {
            "machineItemName": item_name,
            "machineCode": item_name.upper(),
            "machineKind": machine_kind(item_name),
        }
    return None


def build_machine_item(move_name: str, machine: Optional[Dict[str, str]]) -> Optional[Dict[str, Any]]:
    """Synthesize the TM/HM/TR item record attached to a move."""
    if not machine or not machine.get("machineItemName"):
        return None
    item_id = machine["machineItemName"]
    kind = machine.get("machineKind") or "other"
    category, price, sprite, consumable = MACHINE_ITEM_RULES.get(kind, MACHINE_ITEM_RULES["other"])
    return {
        "id": item_id,
        "name": (machine.get("machineCode") or item_id).upper(),
        "description": MACHINE_ITEM_DESCRIPTION,
        "effect": MACHINE_ITEM_EFFECT,
        "category": category,
        "subCategory": None,
        "price": price,
        "sprite": sprite,
        "consumable": consumable,
        "battleUsable": False,
        "overworldUsable": False,
        "moveId": move_name,
        "moveNameCache": move_name,
    }


def build_move_record(
    move: RawMove,
    machine: Optional[Dict[str, str]] = None,
    *,
    language: str = "en",
) -> Dict[str, Any]:
    """Build one MoveRecord. ``machineItem`` is present only with a machine."""
    status_ailment, status_chance = resolve_status(move)
    stat_changes, stat_change_chance = resolve_stat_changes(move)
    flag_names: List[str] = list(move.flags)

    record: Dict[str, Any] = {
        "id": move.id,
        "name": move.name,
        "type": move.type,
        "damageClass": move.damage_class,
        "power": move.power,
        "accuracy": move.accuracy,
        "pp": move.pp,
        "priority": move.priority if move.priority is not None else 0,
        "target": move.target,
        "effectText": normalize_text(pick_text(move.effect_entries, language)),
        "flavorText": normalize_text(pick_text(move.flavor_text_entries, language)),
        "raw": {
            "effectChance": move.effect_chance,
            "metaAilment": move.ailment,
            "metaAilmentChance": move.ailment_chance,
            "metaStatChance": move.stat_chance,
        },
        "statusAilment": status_ailment,
        "statusChance": status_chance,
        "statChanges": stat_changes,
        "statChangeChance": stat_change_chance,
        "flinchChance": move.flinch_chance,
        "critStage": move.crit_rate,
        "drain": move.drain,
        "healing": move.healing,
        "flags": flag_names,
    }
    for field_name, flag in FLAG_FIELDS:
        record[field_name] = flag in flag_names
    record["machine"] = machine

    machine_item = build_machine_item(move.name, machine)
    if machine_item is not None:
        record["machineItem"] = machine_item
    return record
