"""Item normalizer.

Machine items (TM/HM/TR) are not built here; they are synthesized from moves
(see ``transform_moves.build_machine_item``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from .naming import normalize_text
from .raw import RawItem, pick_text

# Ordered (substring, category, subCategory); first match on the upstream
# category slug wins.
CATEGORY_RULES: Tuple[Tuple[str, str, Optional[str]], ...] = (
    ("ball", "pokebola", "captura"),
    ("medicine", "cura", "recuperacao-hp"),
    ("healing", "cura", "recuperacao-hp"),
    ("revival", "cura", "recuperacao-status"),
    ("status-cures", "status", "recuperacao-status"),
    ("effort-drop", "status", "aumento-ev"),
    ("vitamins", "status", "aumento-ev"),
    ("held-items", "item-segurado", None),
    ("evolution", "item-evolucao", None),
    ("berry", "berries", None),
    ("key-items", "item-chave", None),
    ("battle", "item-batalha", "boost-batalha"),
)
FALLBACK_CATEGORY: Tuple[str, Optional[str]] = ("outros", None)


def is_machine_item_name(name: str) -> bool:
    return name.startswith(("tm", "hm", "tr"))


def map_category(category: Optional[str]) -> Tuple[str, Optional[str]]:
    cat = category or ""
    for needle, mapped, sub in CATEGORY_RULES:
        if needle in cat:
            return mapped, sub
    return FALLBACK_CATEGORY


def build_item_record(item: RawItem, *, language: str = "en") -> Dict[str, Any]:
    """Build one ItemRecord."""
    category, sub_category = map_category(item.category)
    return {
        "id": item.name,
        "name": pick_text(item.names, language) or item.name,
        "description": normalize_text(pick_text(item.short_effects, language)),
        "effect": normalize_text(pick_text(item.effects, language)),
        "category": category,
        "subCategory": sub_category,
        "price": item.cost,
        "sprite": item.sprite,
        "consumable": "consumable" in item.attributes,
        "battleUsable": "usable-in-battle" in item.attributes,
        "overworldUsable": "usable-overworld" in item.attributes,
    }
