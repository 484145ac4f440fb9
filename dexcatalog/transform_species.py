"""Species normalizer.

Builds a canonical SpeciesRecord from a ``/pokemon`` + ``/pokemon-species``
payload pair. Shared extraction helpers (types, stats, abilities) are reused
by the form normalizer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import PayloadError
from .naming import capitalize_first, id_from_url
from .raw import RawPokemon, RawSpecies
from .sprites import resolve_sprite
from .typechart import DamageRelationsCache, compute_effectiveness
from .units import decimeters_to_meters, hectograms_to_kg

STEPS_PER_CYCLE = 255

STAT_KEYS = {
    "hp": "hp",
    "attack": "attack",
    "defense": "defense",
    "special-attack": "specialAttack",
    "special-defense": "specialDefense",
    "speed": "speed",
}

ROMAN_GENERATIONS = {
    "i": 1,
    "ii": 2,
    "iii": 3,
    "iv": 4,
    "v": 5,
    "vi": 6,
    "vii": 7,
    "viii": 8,
    "ix": 9,
}


def parse_generation(slug: Optional[str]) -> Optional[int]:
    """``generation-iv`` -> 4; anything unrecognized -> None."""
    if not isinstance(slug, str) or not slug.startswith("generation-"):
        return None
    return ROMAN_GENERATIONS.get(slug[len("generation-"):].lower())


def extract_types(pokemon: RawPokemon) -> List[str]:
    return [t.name for t in sorted(pokemon.types, key=lambda t: t.slot)]


def extract_base_stats(pokemon: RawPokemon) -> Dict[str, int]:
    stats = {key: 0 for key in STAT_KEYS.values()}
    for s in pokemon.stats:
        key = STAT_KEYS.get(s.name)
        if key is not None:
            stats[key] = s.base_stat
    return stats


def extract_abilities(pokemon: RawPokemon) -> List[Dict[str, Any]]:
    return [
        {"abilityId": a.name, "isHidden": a.is_hidden, "slot": a.slot}
        for a in sorted(pokemon.abilities, key=lambda a: a.slot)
    ]


def extract_physical(pokemon: RawPokemon) -> Dict[str, Optional[float]]:
    return {
        "heightMeters": decimeters_to_meters(pokemon.height),
        "weightKg": hectograms_to_kg(pokemon.weight),
    }


def build_incubation(hatch_counter: Optional[int]) -> Dict[str, Optional[int]]:
    steps = None if hatch_counter is None else STEPS_PER_CYCLE * (hatch_counter + 1)
    return {
        "hatchCounter": hatch_counter,
        "stepsPerCycle": STEPS_PER_CYCLE,
        "stepsToHatch": steps,
    }


def build_species_record(
    pokemon: RawPokemon,
    species: RawSpecies,
    relations: DamageRelationsCache,
) -> Dict[str, Any]:
    """Build one SpeciesRecord. Field order is the artifact's field order."""
    types = extract_types(pokemon)
    if not 1 <= len(types) <= 2:
        raise PayloadError(f"pokemon {pokemon.name}: expected 1 or 2 types, got {types!r}")
    return {
        "id": species.id,
        "name": capitalize_first(pokemon.name),
        "generation": parse_generation(species.generation),
        "types": types,
        "baseStats": extract_base_stats(pokemon),
        "abilities": extract_abilities(pokemon),
        "eggGroups": sorted(set(species.egg_groups)),
        "physical": extract_physical(pokemon),
        "incubation": build_incubation(species.hatch_counter),
        "captureRate": species.capture_rate,
        "flags": {
            "legendary": species.is_legendary,
            "mythical": species.is_mythical,
        },
        "sprites": resolve_sprite(pokemon.sprites),
        "typeMatchups": compute_effectiveness(types, relations),
        "evolutions": {
            "chainId": id_from_url(species.evolution_chain_url, "evolution-chain"),
        },
    }
