"""Sprite URL resolution with provenance.

Tiers are tried in order: Pokémon HOME renders, official artwork, then the
classic front sprites. The first tier holding either URL wins, and both
``default`` and ``shiny`` are taken from that same tier. A missing shiny is
not borrowed from a lower tier.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

SOURCE_NONE = "none"


def _as_nonempty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _tiers(sprites: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    other = sprites.get("other")
    other = other if isinstance(other, dict) else {}
    home = other.get("home")
    official = other.get("official-artwork")
    return [
        ("home", home if isinstance(home, dict) else {}),
        ("official-artwork", official if isinstance(official, dict) else {}),
        ("front", sprites),
    ]


def resolve_sprite(sprites: Any) -> Dict[str, Optional[str]]:
    """Return ``{default, shiny, source}`` for a raw ``sprites`` tree."""
    if isinstance(sprites, dict):
        for source, node in _tiers(sprites):
            default = _as_nonempty_str(node.get("front_default"))
            shiny = _as_nonempty_str(node.get("front_shiny"))
            if default or shiny:
                return {"default": default, "shiny": shiny, "source": source}
    return {"default": None, "shiny": None, "source": SOURCE_NONE}
