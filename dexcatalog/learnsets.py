"""Per-species learnsets for the reference version group."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .raw import RawPokemon

LEVEL_UP = "level-up"


def build_learnset(pokemon: RawPokemon, version_group: str) -> Dict[str, Any]:
    """Collapse ``pokemon.moves`` into ``{moves: [{moveId, method, level}]}``.

    One entry per (move, method); level-up keeps the lowest non-zero level.
    """
    by_key: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for learn in pokemon.moves:
        if learn.version_group != version_group:
            continue
        key = (learn.move, learn.method)
        entry = by_key.get(key)
        if entry is None:
            by_key[key] = {
                "moveId": learn.move,
                "method": learn.method,
                "level": learn.level if learn.method == LEVEL_UP else None,
            }
            continue
        if learn.method == LEVEL_UP and learn.level > 0:
            old = entry["level"] or 0
            if old == 0 or learn.level < old:
                entry["level"] = learn.level

    level_up: List[Dict[str, Any]] = sorted(
        (e for e in by_key.values() if e["method"] == LEVEL_UP),
        key=lambda e: (e["level"] or 0, e["moveId"]),
    )
    rest = sorted(
        (e for e in by_key.values() if e["method"] != LEVEL_UP),
        key=lambda e: (e["moveId"], e["method"]),
    )
    return {"moves": level_up + rest}
