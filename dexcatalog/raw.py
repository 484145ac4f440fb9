"""Typed views over raw PokéAPI payloads.

Each ``Raw*`` dataclass is built by ``from_payload`` at the normalizer
boundary. Malformed list entries are skipped the way the upstream data
occasionally requires; a payload missing its identity fields raises
``PayloadError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .errors import PayloadError


def _ref_name(node: Any, key: str) -> Optional[str]:
    """Return ``node[key]["name"]`` when it is a string."""
    if not isinstance(node, dict):
        return None
    ref = node.get(key)
    name = ref.get("name") if isinstance(ref, dict) else None
    return name if isinstance(name, str) else None


def _ref_url(node: Any, key: str) -> Optional[str]:
    if not isinstance(node, dict):
        return None
    ref = node.get(key)
    url = ref.get("url") if isinstance(ref, dict) else None
    return url if isinstance(url, str) and url else None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, int) else None


def _opt_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, (int, float)) else None


def _require_dict(payload: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise PayloadError(f"{kind} payload must be an object, got {type(payload).__name__}")
    return payload


def _require_identity(data: Dict[str, Any], kind: str) -> Tuple[int, str]:
    resource_id = _opt_int(data.get("id"))
    name = data.get("name")
    if resource_id is None or not isinstance(name, str) or not name:
        raise PayloadError(f"{kind} payload missing id/name")
    return resource_id, name


def _text_entries(entries: Any, *fields: str) -> Tuple[Tuple[str, str], ...]:
    """Collect ``(language, text)`` pairs, first non-empty field per entry."""
    if not isinstance(entries, list):
        return ()
    out = []
    for entry in entries:
        lang = _ref_name(entry, "language")
        if lang is None:
            continue
        for f in fields:
            text = entry.get(f)
            if isinstance(text, str) and text.strip():
                out.append((lang, text))
                break
    return tuple(out)


@dataclass(frozen=True)
class RawTypeSlot:
    slot: int
    name: str


@dataclass(frozen=True)
class RawStat:
    name: str
    base_stat: int


@dataclass(frozen=True)
class RawAbilitySlot:
    slot: int
    is_hidden: bool
    name: str


@dataclass(frozen=True)
class RawMoveLearn:
    move: str
    version_group: str
    method: str
    level: int


@dataclass(frozen=True)
class RawPokemon:
    """``GET /pokemon/{name-or-id}``."""

    id: int
    name: str
    species_name: Optional[str]
    species_url: Optional[str]
    height: Optional[float]
    weight: Optional[float]
    types: Tuple[RawTypeSlot, ...]
    stats: Tuple[RawStat, ...]
    abilities: Tuple[RawAbilitySlot, ...]
    sprites: Dict[str, Any] = field(default_factory=dict, compare=False)
    moves: Tuple[RawMoveLearn, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "RawPokemon":
        data = _require_dict(payload, "pokemon")
        pokemon_id, name = _require_identity(data, "pokemon")

        types = []
        for t in data.get("types") or []:
            slot = _opt_int(t.get("slot")) if isinstance(t, dict) else None
            type_name = _ref_name(t, "type")
            if slot is not None and type_name:
                types.append(RawTypeSlot(slot, type_name.lower()))

        stats = []
        for s in data.get("stats") or []:
            base = _opt_int(s.get("base_stat")) if isinstance(s, dict) else None
            stat_name = _ref_name(s, "stat")
            if base is None or stat_name is None:
                continue
            if base < 0:
                raise PayloadError(f"pokemon {name}: negative base stat for {stat_name}")
            stats.append(RawStat(stat_name, base))

        abilities = []
        for a in data.get("abilities") or []:
            slot = _opt_int(a.get("slot")) if isinstance(a, dict) else None
            ability_name = _ref_name(a, "ability")
            if slot is not None and ability_name:
                abilities.append(RawAbilitySlot(slot, bool(a.get("is_hidden")), ability_name))

        moves = []
        for m in data.get("moves") or []:
            move_name = _ref_name(m, "move")
            if move_name is None:
                continue
            for det in m.get("version_group_details") or []:
                vg = _ref_name(det, "version_group")
                if vg is None:
                    continue
                moves.append(
                    RawMoveLearn(
                        move=move_name,
                        version_group=vg,
                        method=_ref_name(det, "move_learn_method") or "other",
                        level=_opt_int(det.get("level_learned_at")) or 0,
                    )
                )

        sprites = data.get("sprites")
        return cls(
            id=pokemon_id,
            name=name,
            species_name=_ref_name(data, "species"),
            species_url=_ref_url(data, "species"),
            height=_opt_number(data.get("height")),
            weight=_opt_number(data.get("weight")),
            types=tuple(types),
            stats=tuple(stats),
            abilities=tuple(abilities),
            sprites=sprites if isinstance(sprites, dict) else {},
            moves=tuple(moves),
        )


@dataclass(frozen=True)
class RawSpecies:
    """``GET /pokemon-species/{name-or-id}``."""

    id: int
    name: str
    generation: Optional[str]
    egg_groups: Tuple[str, ...]
    hatch_counter: Optional[int]
    capture_rate: Optional[int]
    is_legendary: bool
    is_mythical: bool
    evolution_chain_url: Optional[str]

    @classmethod
    def from_payload(cls, payload: Any) -> "RawSpecies":
        data = _require_dict(payload, "pokemon-species")
        species_id, name = _require_identity(data, "pokemon-species")
        egg_groups = tuple(
            g["name"]
            for g in data.get("egg_groups") or []
            if isinstance(g, dict) and isinstance(g.get("name"), str)
        )
        return cls(
            id=species_id,
            name=name,
            generation=_ref_name(data, "generation"),
            egg_groups=egg_groups,
            hatch_counter=_opt_int(data.get("hatch_counter")),
            capture_rate=_opt_int(data.get("capture_rate")),
            is_legendary=bool(data.get("is_legendary")),
            is_mythical=bool(data.get("is_mythical")),
            evolution_chain_url=_ref_url(data, "evolution_chain"),
        )


@dataclass(frozen=True)
class RawDamageRelations:
    """The ``damage_relations`` block of ``GET /type/{name}``."""

    double_damage_from: Tuple[str, ...]
    half_damage_from: Tuple[str, ...]
    no_damage_from: Tuple[str, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "RawDamageRelations":
        data = _require_dict(payload, "type")
        rel = data.get("damage_relations")
        if not isinstance(rel, dict):
            raise PayloadError(f"type {data.get('name')!r} has no damage_relations")

        def names(key: str) -> Tuple[str, ...]:
            return tuple(
                t["name"].lower()
                for t in rel.get(key) or []
                if isinstance(t, dict) and isinstance(t.get("name"), str)
            )

        return cls(
            double_damage_from=names("double_damage_from"),
            half_damage_from=names("half_damage_from"),
            no_damage_from=names("no_damage_from"),
        )


@dataclass(frozen=True)
class RawMove:
    """``GET /move/{name}``."""

    id: int
    name: str
    type: Optional[str]
    damage_class: Optional[str]
    power: Optional[int]
    accuracy: Optional[int]
    pp: Optional[int]
    priority: Optional[int]
    target: Optional[str]
    effect_chance: Optional[float]
    ailment: Optional[str]
    ailment_chance: Optional[float]
    stat_chance: Optional[float]
    flinch_chance: Optional[float]
    crit_rate: Optional[float]
    drain: Optional[float]
    healing: Optional[float]
    stat_changes: Tuple[Tuple[Optional[str], Optional[int]], ...]
    flags: Tuple[str, ...]
    machines: Tuple[Tuple[str, str], ...]
    effect_entries: Tuple[Tuple[str, str], ...]
    flavor_text_entries: Tuple[Tuple[str, str], ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "RawMove":
        data = _require_dict(payload, "move")
        move_id, name = _require_identity(data, "move")
        meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}

        stat_changes = tuple(
            (_ref_name(s, "stat"), _opt_int(s.get("change")))
            for s in data.get("stat_changes") or []
            if isinstance(s, dict)
        )

        raw_flags = data.get("flags") or data.get("flag") or []
        flags = []
        for f in raw_flags if isinstance(raw_flags, list) else []:
            flag = f.get("name") if isinstance(f, dict) else f
            if isinstance(flag, str):
                flags.append(flag)

        machines = []
        for m in data.get("machines") or []:
            vg = _ref_name(m, "version_group")
            url = _ref_url(m, "machine")
            if vg and url:
                machines.append((vg, url))

        return cls(
            id=move_id,
            name=name,
            type=_ref_name(data, "type"),
            damage_class=_ref_name(data, "damage_class"),
            power=_opt_int(data.get("power")),
            accuracy=_opt_int(data.get("accuracy")),
            pp=_opt_int(data.get("pp")),
            priority=_opt_int(data.get("priority")),
            target=_ref_name(data, "target"),
            effect_chance=_opt_number(data.get("effect_chance")),
            ailment=_ref_name(meta, "ailment"),
            ailment_chance=_opt_number(meta.get("ailment_chance")),
            stat_chance=_opt_number(meta.get("stat_chance")),
            flinch_chance=_opt_number(meta.get("flinch_chance")),
            crit_rate=_opt_number(meta.get("crit_rate")),
            drain=_opt_number(meta.get("drain")),
            healing=_opt_number(meta.get("healing")),
            stat_changes=stat_changes,
            flags=tuple(flags),
            machines=tuple(machines),
            effect_entries=_text_entries(data.get("effect_entries"), "short_effect", "effect"),
            flavor_text_entries=_text_entries(data.get("flavor_text_entries"), "flavor_text"),
        )


@dataclass(frozen=True)
class RawItem:
    """``GET /item/{id}``."""

    id: int
    name: str
    category: Optional[str]
    cost: Optional[int]
    attributes: Tuple[str, ...]
    names: Tuple[Tuple[str, str], ...]
    short_effects: Tuple[Tuple[str, str], ...]
    effects: Tuple[Tuple[str, str], ...]
    sprite: Optional[str]

    @classmethod
    def from_payload(cls, payload: Any) -> "RawItem":
        data = _require_dict(payload, "item")
        item_id, name = _require_identity(data, "item")
        attributes = tuple(
            a["name"]
            for a in data.get("attributes") or []
            if isinstance(a, dict) and isinstance(a.get("name"), str)
        )
        sprites = data.get("sprites")
        sprite = sprites.get("default") if isinstance(sprites, dict) else None
        return cls(
            id=item_id,
            name=name,
            category=_ref_name(data, "category"),
            cost=_opt_int(data.get("cost")),
            attributes=attributes,
            names=_text_entries(data.get("names"), "name"),
            short_effects=_text_entries(data.get("effect_entries"), "short_effect"),
            effects=_text_entries(data.get("effect_entries"), "effect"),
            sprite=sprite if isinstance(sprite, str) and sprite.strip() else None,
        )


def pick_text(entries: Tuple[Tuple[str, str], ...], language: str) -> Optional[str]:
    """Return the first text for ``language``, or None."""
    for lang, text in entries:
        if lang == language:
            return text
    return None
