"""Form (mega / gigantamax / other variant) normalizer.

A form's base species is resolved in three hops: variant payload, then its
species payload by slug, then the already-built species index by numeric id.
A failed hop raises ``FormResolutionError`` with a reason code; the caller
routes it to the failure report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from .errors import FormResolutionError, PayloadError
from .fetch import NotFound
from .naming import slug_titlecase
from .raw import RawPokemon, RawSpecies
from .sprites import resolve_sprite
from .transform_species import (
    extract_abilities,
    extract_base_stats,
    extract_physical,
    extract_types,
)
from .typechart import DamageRelationsCache, compute_effectiveness

FORM_MEGA = "mega"
FORM_GMAX = "gigantamax"
FORM_OTHER = "other"

REASON_POKEMON_404 = "pokeapi_pokemon_404"
REASON_SPECIES_404 = "pokeapi_species_404"
REASON_BASE_MISSING = "base_species_not_found_in_species_json"

_MEGA_SUFFIXES = ("-mega", "-mega-x", "-mega-y")


def classify_form_type(name: str) -> str:
    key = (name or "").lower()
    if key.endswith(_MEGA_SUFFIXES):
        return FORM_MEGA
    if key.endswith("-gmax"):
        return FORM_GMAX
    return FORM_OTHER


def select_form_candidates(names: Iterable[str], include_other: bool = False) -> List[str]:
    """Pick listing names worth building as forms.

    Mega and gigantamax variants are always candidates. With
    ``include_other`` any other hyphenated variant is admitted too.
    """
    out = []
    for name in names:
        kind = classify_form_type(name)
        if kind != FORM_OTHER or (include_other and "-" in name):
            out.append(name)
    return out


def index_species_by_id(species_catalog: Mapping[str, Any]) -> Dict[int, Dict[str, Any]]:
    """Index a loaded ``species.json`` document by numeric id."""
    index: Dict[int, Dict[str, Any]] = {}
    for key, record in species_catalog.items():
        if not isinstance(record, dict):
            continue
        raw_id = record.get("id", key)
        try:
            index[int(raw_id)] = record
        except (TypeError, ValueError):
            continue
    return index


@dataclass(frozen=True)
class ResolvedForm:
    pokemon: RawPokemon
    species: RawSpecies


def resolve_base_species(
    client: Any,
    form_id: str,
    species_index: Mapping[int, Any],
) -> ResolvedForm:
    """Fetch a variant and locate its base species in ``species_index``."""
    url = client.resource_url("pokemon", form_id)
    payload = client.get_json(url, allow_not_found=True)
    if isinstance(payload, NotFound):
        raise FormResolutionError(REASON_POKEMON_404, url=url)
    pokemon = RawPokemon.from_payload(payload)

    base_name = (pokemon.species_name or "").lower()
    if not base_name:
        raise FormResolutionError(REASON_SPECIES_404, baseName=base_name)
    species_payload = client.get_resource("pokemon-species", base_name, allow_not_found=True)
    if isinstance(species_payload, NotFound):
        raise FormResolutionError(REASON_SPECIES_404, baseName=base_name)
    species = RawSpecies.from_payload(species_payload)

    if species.id not in species_index:
        raise FormResolutionError(REASON_BASE_MISSING, baseName=base_name, dexId=species.id)
    return ResolvedForm(pokemon=pokemon, species=species)


def build_mechanics(form_type: str) -> Dict[str, Any]:
    if form_type == FORM_MEGA:
        return {"mega": {"megaStoneItemId": None}}
    if form_type == FORM_GMAX:
        return {"gigantamax": {"gmaxFactor": True}}
    return {}


def build_form_record(
    form_id: str,
    resolved: ResolvedForm,
    relations: DamageRelationsCache,
) -> Dict[str, Any]:
    """Build one FormRecord from the variant's own payload."""
    pokemon = resolved.pokemon
    types = extract_types(pokemon)
    if not 1 <= len(types) <= 2:
        raise PayloadError(f"form {form_id}: variant payload has types {types!r}")
    if not pokemon.stats:
        raise PayloadError(f"form {form_id}: variant payload has no stats")

    form_type = classify_form_type(form_id)
    return {
        "formId": form_id,
        "baseSpeciesId": resolved.species.id,
        "formType": form_type,
        "displayName": slug_titlecase(form_id),
        "types": types,
        "baseStats": extract_base_stats(pokemon),
        "abilities": extract_abilities(pokemon),
        "physical": extract_physical(pokemon),
        "sprites": resolve_sprite(pokemon.sprites),
        "typeMatchups": compute_effectiveness(types, relations),
        "mechanics": build_mechanics(form_type),
    }
