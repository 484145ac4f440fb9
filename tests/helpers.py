"""Offline doubles and payload builders shared by the test modules."""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlsplit

import requests

from dexcatalog.raw import RawDamageRelations
from dexcatalog.typechart import DamageRelationsCache

BASE_URL = "https://pokeapi.test/api/v2"

# Hand-written partial chart, not the game chart: water takes 2x from fire.
FIXTURE_CHART: Dict[str, Dict[str, Sequence[str]]] = {
    "water": {"double": ("fire", "electric"), "half": ("water", "dragon"), "none": ()},
    "fire": {"double": ("water", "ground", "rock"), "half": ("fire", "grass", "bug"), "none": ()},
    "grass": {"double": ("fire", "flying", "bug"), "half": ("water", "grass", "ground"), "none": ()},
    "poison": {"double": ("ground", "psychic"), "half": ("grass", "fighting", "poison", "bug"), "none": ()},
    "flying": {"double": ("electric", "ice", "rock"), "half": ("grass", "fighting", "bug"), "none": ("ground",)},
    "ground": {"double": ("water", "grass", "ice"), "half": ("poison", "rock"), "none": ("electric",)},
    "ghost": {"double": ("ghost", "dark"), "half": ("poison", "bug"), "none": ("normal", "fighting")},
    "normal": {"double": ("fighting",), "half": (), "none": ("ghost",)},
    "dragon": {"double": ("ice", "dragon", "fairy"), "half": ("fire", "water", "electric", "grass"), "none": ()},
}


def _refs(names: Iterable[str], endpoint: str) -> List[Dict[str, str]]:
    return [{"name": n, "url": f"{BASE_URL}/{endpoint}/{n}/"} for n in names]


def type_payload(name: str) -> Dict[str, Any]:
    chart = FIXTURE_CHART[name]
    return {
        "id": list(FIXTURE_CHART).index(name) + 1,
        "name": name,
        "damage_relations": {
            "double_damage_from": _refs(chart["double"], "type"),
            "half_damage_from": _refs(chart["half"], "type"),
            "no_damage_from": _refs(chart["none"], "type"),
            "double_damage_to": [],
            "half_damage_to": [],
            "no_damage_to": [],
        },
    }


class CountingLoader:
    """Damage-relations loader over ``FIXTURE_CHART`` that counts calls."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, name: str) -> RawDamageRelations:
        with self._lock:
            self.calls.append(name)
        return RawDamageRelations.from_payload(type_payload(name))


def make_relations() -> DamageRelationsCache:
    return DamageRelationsCache(CountingLoader())


def pokemon_payload(
    pid: int,
    name: str,
    types: Sequence[str] = ("water",),
    *,
    species: Optional[str] = None,
    species_id: Optional[int] = None,
    stats: Optional[Dict[str, int]] = None,
    abilities: Sequence[tuple] = (("torrent", False, 1), ("rain-dish", True, 3)),
    height: Optional[int] = 5,
    weight: Optional[int] = 90,
    sprites: Optional[Dict[str, Any]] = None,
    moves: Sequence[tuple] = (),
) -> Dict[str, Any]:
    """``moves`` holds ``(move, version_group, method, level)`` tuples."""
    if stats is None:
        stats = {
            "hp": 44,
            "attack": 48,
            "defense": 65,
            "special-attack": 50,
            "special-defense": 64,
            "speed": 43,
        }
    species_name = species or name
    move_nodes: Dict[str, List[Dict[str, Any]]] = {}
    for move, vg, method, level in moves:
        move_nodes.setdefault(move, []).append(
            {
                "level_learned_at": level,
                "move_learn_method": {"name": method, "url": ""},
                "version_group": {"name": vg, "url": ""},
            }
        )
    if sprites is None:
        sprites = {
            "front_default": f"https://img.test/front/{pid}.png",
            "front_shiny": f"https://img.test/front/shiny/{pid}.png",
            "other": {
                "home": {
                    "front_default": f"https://img.test/home/{pid}.png",
                    "front_shiny": f"https://img.test/home/shiny/{pid}.png",
                },
            },
        }
    return {
        "id": pid,
        "name": name,
        "height": height,
        "weight": weight,
        "species": {
            "name": species_name,
            "url": f"{BASE_URL}/pokemon-species/{species_id or pid}/",
        },
        "types": [
            {"slot": i + 1, "type": {"name": t, "url": ""}} for i, t in enumerate(types)
        ],
        "stats": [
            {"base_stat": v, "effort": 0, "stat": {"name": k, "url": ""}} for k, v in stats.items()
        ],
        "abilities": [
            {"ability": {"name": a, "url": ""}, "is_hidden": hidden, "slot": slot}
            for a, hidden, slot in abilities
        ],
        "sprites": sprites,
        "moves": [
            {"move": {"name": m, "url": ""}, "version_group_details": details}
            for m, details in move_nodes.items()
        ],
    }


def species_payload(
    sid: int,
    name: str,
    *,
    generation: Optional[str] = "generation-i",
    hatch_counter: Optional[int] = 20,
    capture_rate: Optional[int] = 45,
    egg_groups: Sequence[str] = ("water1", "monster"),
    legendary: bool = False,
    mythical: bool = False,
    chain_id: Optional[int] = 3,
) -> Dict[str, Any]:
    return {
        "id": sid,
        "name": name,
        "generation": {"name": generation, "url": ""} if generation else None,
        "hatch_counter": hatch_counter,
        "capture_rate": capture_rate,
        "egg_groups": [{"name": g, "url": ""} for g in egg_groups],
        "is_legendary": legendary,
        "is_mythical": mythical,
        "evolution_chain": (
            {"url": f"{BASE_URL}/evolution-chain/{chain_id}/"} if chain_id is not None else None
        ),
    }


def move_payload(
    mid: int,
    name: str,
    *,
    type_: str = "normal",
    damage_class: str = "physical",
    power: Optional[int] = 40,
    accuracy: Optional[int] = 100,
    pp: Optional[int] = 35,
    priority: int = 0,
    effect_chance: Optional[int] = None,
    ailment: str = "none",
    ailment_chance: int = 0,
    stat_chance: int = 0,
    flinch_chance: int = 0,
    stat_changes: Sequence[tuple] = (),
    flags: Sequence[str] = (),
    machines: Sequence[tuple] = (),
    effect: str = "Inflicts regular damage.",
    flavor: str = "A physical attack.",
) -> Dict[str, Any]:
    """``machines`` holds ``(version_group, machine_id)`` pairs."""
    return {
        "id": mid,
        "name": name,
        "type": {"name": type_, "url": ""},
        "damage_class": {"name": damage_class, "url": ""},
        "power": power,
        "accuracy": accuracy,
        "pp": pp,
        "priority": priority,
        "target": {"name": "selected-pokemon", "url": ""},
        "effect_chance": effect_chance,
        "meta": {
            "ailment": {"name": ailment, "url": ""},
            "ailment_chance": ailment_chance,
            "stat_chance": stat_chance,
            "flinch_chance": flinch_chance,
            "crit_rate": 0,
            "drain": 0,
            "healing": 0,
        },
        "stat_changes": [
            {"change": stages, "stat": {"name": stat, "url": ""}} for stat, stages in stat_changes
        ],
        "flags": [{"name": f} for f in flags],
        "machines": [
            {
                "machine": {"url": f"{BASE_URL}/machine/{machine_id}/"},
                "version_group": {"name": vg, "url": ""},
            }
            for vg, machine_id in machines
        ],
        "effect_entries": [
            {"effect": effect, "short_effect": effect, "language": {"name": "en", "url": ""}},
        ],
        "flavor_text_entries": [
            {"flavor_text": "Un ataque.", "language": {"name": "es", "url": ""}},
            {"flavor_text": flavor, "language": {"name": "en", "url": ""}},
        ],
    }


def machine_payload(machine_id: int, item_name: str, version_group: str = "sword-shield") -> Dict[str, Any]:
    return {
        "id": machine_id,
        "item": {"name": item_name, "url": ""},
        "version_group": {"name": version_group, "url": ""},
    }


def item_payload(
    iid: int,
    name: str,
    *,
    category: Optional[str] = "standard-balls",
    cost: Optional[int] = 200,
    attributes: Sequence[str] = ("countable", "consumable", "usable-in-battle"),
    display_name: Optional[str] = None,
    short_effect: str = "Tries to catch a wild Pokémon.",
    effect: str = "Used in battle\n:   Attempts to catch a wild Pokémon.",
    sprite: Optional[str] = "https://img.test/items/x.png",
) -> Dict[str, Any]:
    return {
        "id": iid,
        "name": name,
        "cost": cost,
        "category": {"name": category, "url": ""} if category else None,
        "attributes": [{"name": a, "url": ""} for a in attributes],
        "names": [
            {"name": display_name or name.title(), "language": {"name": "en", "url": ""}},
        ],
        "effect_entries": [
            {"effect": effect, "short_effect": short_effect, "language": {"name": "en", "url": ""}},
        ],
        "sprites": {"default": sprite},
    }


def listing(endpoint: str, names: Iterable[str]) -> Dict[str, Any]:
    results = [{"name": n, "url": f"{BASE_URL}/{endpoint}/{n}/"} for n in names]
    return {"count": len(results), "next": None, "previous": None, "results": results}


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, bad_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


def route_key(url: str) -> str:
    """``https://host/api/v2/pokemon/1/?x=y`` -> ``pokemon/1``."""
    path = urlsplit(url).path.strip("/")
    prefix = "api/v2/"
    if path.startswith(prefix):
        path = path[len(prefix):]
    return path


class FakeSession:
    """Stand-in for ``requests.Session`` routed by endpoint path.

    A route maps to a payload (200), an int status, an exception instance to
    raise, or a list of those consumed one per call.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def _next(self, key: str) -> Any:
        with self._lock:
            self.calls.append(key)
            if key not in self.routes:
                return 404
            value = self.routes[key]
            if isinstance(value, list):
                return value.pop(0) if len(value) > 1 else value[0]
            return value

    def get(self, url: str, timeout: Optional[float] = None) -> FakeResponse:
        value = self._next(route_key(url))
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, FakeResponse):
            return value
        if isinstance(value, int):
            return FakeResponse(value, {"detail": "error"})
        return FakeResponse(200, value)

    def count(self, key: str) -> int:
        return sum(1 for c in self.calls if c == key)
