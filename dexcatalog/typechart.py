"""Defensive type-effectiveness engine.

Multipliers for one or two defending types are combined multiplicatively
from each type's ``damage_relations``. Relations are read through a
run-scoped :class:`DamageRelationsCache` so each type is fetched once.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Sequence

from .raw import RawDamageRelations

TYPES = (
    "normal",
    "fire",
    "water",
    "electric",
    "grass",
    "ice",
    "fighting",
    "poison",
    "ground",
    "flying",
    "psychic",
    "bug",
    "rock",
    "ghost",
    "dragon",
    "dark",
    "steel",
    "fairy",
)


class DamageRelationsCache:
    """Read-through cache of damage relations keyed by type name.

    ``loader`` is called at most once per type, including when several
    workers ask for the same uncached type at the same time.
    """

    def __init__(self, loader: Callable[[str], RawDamageRelations]) -> None:
        self._loader = loader
        self._entries: Dict[str, RawDamageRelations] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_client(cls, client: Any) -> "DamageRelationsCache":
        return cls(lambda name: RawDamageRelations.from_payload(client.get_resource("type", name)))

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, type_name: str) -> RawDamageRelations:
        key = type_name.lower()
        with self._lock:
            if key in self._entries:
                self.hits += 1
                return self._entries[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                if key in self._entries:
                    self.hits += 1
                    return self._entries[key]
            relations = self._loader(key)
            with self._lock:
                self._entries[key] = relations
                self.misses += 1
            return relations


def compute_multipliers(
    defender_types: Sequence[str], relations: DamageRelationsCache
) -> Dict[str, float]:
    if not 1 <= len(defender_types) <= 2:
        raise ValueError(f"expected 1 or 2 defending types, got {list(defender_types)!r}")

    multipliers: Dict[str, float] = {t: 1.0 for t in TYPES}
    for defending in defender_types:
        rel = relations.get(defending)
        for factor, attackers in (
            (2.0, rel.double_damage_from),
            (0.5, rel.half_damage_from),
            (0.0, rel.no_damage_from),
        ):
            for atk in attackers:
                if atk in multipliers:
                    multipliers[atk] *= factor
    return multipliers


def classify(multipliers: Dict[str, float]) -> Dict[str, Any]:
    """Split a multiplier table into immune/resist/weak/neutral buckets."""
    immune: List[str] = []
    resist: List[Dict[str, Any]] = []
    weak: List[Dict[str, Any]] = []
    neutral: List[str] = []

    for atk, mult in multipliers.items():
        if mult == 0:
            immune.append(atk)
        elif mult < 1:
            resist.append({"type": atk, "multiplier": mult})
        elif mult > 1:
            weak.append({"type": atk, "multiplier": mult})
        else:
            neutral.append(atk)

    # sorted() is stable, so ties keep TYPES order
    resist.sort(key=lambda r: r["multiplier"])
    weak.sort(key=lambda r: -r["multiplier"])

    return {
        "multipliers": dict(multipliers),
        "immune": immune,
        "resist": resist,
        "weak": weak,
        "neutral": neutral,
    }


def compute_effectiveness(
    defender_types: Sequence[str], relations: DamageRelationsCache
) -> Dict[str, Any]:
    """Return the TypeEffectivenessResult for ``defender_types``."""
    return classify(compute_multipliers([t.lower() for t in defender_types], relations))
