"""Stage orchestration for the catalog build.

Each stage discovers its keys, fans the per-key work out over the worker
pool, and writes its artifact plus a ``<kind>.missing.json`` report. A stage
that reaches the writer counts as completed even when some items failed. A
listing that still fails after its retries is recorded as a stage-level
failure and the run moves on to the next stage.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .cache.io import read_json
from .catalog import (
    FORMS_FILE,
    ITEMS_FILE,
    LEARNSETS_FILE,
    MOVES_FILE,
    SPECIES_FILE,
    FailureReport,
    update_meta,
    write_catalog,
    write_report,
)
from .config import PipelineSettings, load_config
from .errors import FetchError, FormResolutionError, PayloadError, PreconditionError
from .fetch import PokeApiClient
from .learnsets import build_learnset
from .pool import Throttle, iter_pool
from .raw import RawItem, RawMove, RawPokemon, RawSpecies
from .transform_forms import (
    build_form_record,
    index_species_by_id,
    resolve_base_species,
    select_form_candidates,
)
from .transform_items import build_item_record, is_machine_item_name
from .transform_moves import build_move_record, lookup_machine
from .transform_species import build_species_record
from .typechart import DamageRelationsCache

logger = logging.getLogger(__name__)

STAGES = ("species", "forms", "moves", "items")
LISTING_LIMIT = 100000

REASON_FETCH_FAILED = "fetch_failed"
REASON_INVALID_PAYLOAD = "invalid_payload"
REASON_UNEXPECTED = "unexpected_error"

# failure-report key for a stage whose listing could not be fetched
LISTING_KEY = "(listing)"


@dataclass
class StageResult:
    stage: str
    discovered: int = 0
    processed: int = 0
    written: int = 0
    skipped: int = 0
    failed: int = 0
    extra: Dict[str, int] = field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        counts = {
            "discovered": self.discovered,
            "processed": self.processed,
            "written": self.written,
            "skipped": self.skipped,
            "failed": self.failed,
        }
        counts.update(self.extra)
        return counts

    def summary_line(self) -> str:
        return f"Summary {self.stage}: " + ", ".join(
            f"{name}={value}" for name, value in self.counts().items()
        )


def record_failure(
    report: FailureReport, key: Any, exc: BaseException, url: Optional[str] = None
) -> str:
    """Route one worker exception to ``report``; returns the reason code.

    ``url`` is the item's source resource, used when the exception does not
    carry one of its own.
    """
    if isinstance(exc, FetchError):
        report.add(key, REASON_FETCH_FAILED, url=exc.url, status=exc.status)
        return REASON_FETCH_FAILED
    if isinstance(exc, FormResolutionError):
        report.add(key, exc.reason, **exc.context)
        return exc.reason
    if isinstance(exc, PayloadError):
        report.add(key, REASON_INVALID_PAYLOAD, url=exc.url or url, error=str(exc))
        return REASON_INVALID_PAYLOAD
    logger.error("Unexpected error while building %s %r", report.kind, key, exc_info=exc)
    report.add(key, REASON_UNEXPECTED, url=url, error=f"{type(exc).__name__}: {exc}")
    return REASON_UNEXPECTED


def _load(client: PokeApiClient, parse: Callable[[Any], Any], endpoint: str, key: Any) -> Any:
    """Fetch one resource and parse it, tagging payload errors with the URL."""
    url = client.resource_url(endpoint, key)
    try:
        return parse(client.get_json(url))
    except PayloadError as exc:
        if exc.url is None:
            exc.url = url
        raise


def _discover(
    stage: str, client: PokeApiClient, endpoint: str, report: FailureReport
) -> Optional[List[Dict[str, str]]]:
    """List ``endpoint``; a listing that still fails is a stage-level failure."""
    try:
        return client.list_resources(endpoint, LISTING_LIMIT)
    except FetchError as exc:
        reason = record_failure(report, LISTING_KEY, exc)
        print(f"- {stage}:{LISTING_KEY} -> failed ({reason})")
        return None


def _drain(
    stage: str,
    keys: List[Any],
    worker: Callable[[Any], Any],
    settings: PipelineSettings,
    report: FailureReport,
    result: StageResult,
    url_for: Optional[Callable[[Any], str]] = None,
) -> List[Any]:
    """Run ``worker`` over ``keys`` and collect successful values."""
    throttle = Throttle(settings.throttle_every, settings.throttle_delay_seconds)
    values: List[Any] = []
    for outcome in iter_pool(keys, worker, concurrency=settings.concurrency, throttle=throttle):
        result.processed += 1
        if outcome.ok:
            values.append(outcome.value)
            print(f"- {stage}:{outcome.key} -> ok")
            continue
        url = url_for(outcome.key) if url_for is not None else None
        reason = record_failure(report, outcome.key, outcome.error, url)
        result.failed += 1
        print(f"- {stage}:{outcome.key} -> failed ({reason})")
    logger.info("%s: throttle paused %d time(s)", stage, throttle.pauses)
    return values


def _apply_limit(keys: List[Any], limit: Optional[int]) -> List[Any]:
    return keys if limit is None else keys[: max(0, limit)]


def _finish(
    settings: PipelineSettings,
    result: StageResult,
    report: FailureReport,
    relations: Optional[DamageRelationsCache] = None,
) -> StageResult:
    write_report(settings.output_dir, report)
    if relations is not None:
        result.extra = {"typeCacheHits": relations.hits, "typeCacheMisses": relations.misses}
    update_meta(
        settings.output_dir,
        result.stage,
        result.counts(),
        baseUrl=settings.base_url,
        machineVersionGroup=settings.machine_version_group,
        pipelineVersion=settings.pipeline_version,
    )
    print(result.summary_line())
    return result


def run_species_stage(
    settings: PipelineSettings,
    client: PokeApiClient,
    *,
    limit: Optional[int] = None,
    relations: Optional[DamageRelationsCache] = None,
) -> StageResult:
    """Build ``species.json`` and ``learnsets.json`` for dex ids 1..max."""
    relations = relations or DamageRelationsCache.from_client(client)
    keys = list(range(1, settings.species_max_id + 1))
    result = StageResult("species", discovered=len(keys))
    keys = _apply_limit(keys, limit)
    print(f"Discovered {result.discovered} species ids; processing {len(keys)}")

    def build(dex_id: int) -> tuple:
        pokemon = _load(client, RawPokemon.from_payload, "pokemon", dex_id)
        species = _load(client, RawSpecies.from_payload, "pokemon-species", dex_id)
        record = build_species_record(pokemon, species, relations)
        return record, build_learnset(pokemon, settings.machine_version_group)

    report = FailureReport("species", key_field="id")
    built = _drain(
        "species", keys, build, settings, report, result,
        url_for=lambda dex_id: client.resource_url("pokemon", dex_id),
    )

    species = {record["id"]: record for record, _ in built}
    learnsets = {record["id"]: learnset for record, learnset in built}
    result.written = write_catalog(
        os.path.join(settings.output_dir, SPECIES_FILE), species, numeric_keys=True
    )
    write_catalog(os.path.join(settings.output_dir, LEARNSETS_FILE), learnsets, numeric_keys=True)
    return _finish(settings, result, report, relations)


def load_species_index(settings: PipelineSettings) -> Dict[int, Dict[str, Any]]:
    """Load the written ``species.json`` or raise ``PreconditionError``."""
    path = os.path.join(settings.output_dir, SPECIES_FILE)
    if not os.path.exists(path):
        raise PreconditionError(f"Missing {path}; run 'build species' first")
    data = read_json(path)
    if not isinstance(data, dict):
        raise PreconditionError(f"Invalid species catalog: {path}")
    return index_species_by_id(data)


def run_forms_stage(
    settings: PipelineSettings,
    client: PokeApiClient,
    *,
    limit: Optional[int] = None,
    relations: Optional[DamageRelationsCache] = None,
) -> StageResult:
    """Build ``forms.json`` from mega/gigantamax variants of built species."""
    species_index = load_species_index(settings)
    relations = relations or DamageRelationsCache.from_client(client)

    report = FailureReport("forms", key_field="formId")
    listing = _discover("forms", client, "pokemon", report)
    if listing is None:
        return _finish(settings, StageResult("forms", failed=1), report, relations)
    candidates = select_form_candidates(
        (entry["name"] for entry in listing), include_other=settings.include_other_forms
    )
    result = StageResult("forms", discovered=len(candidates))
    keys = _apply_limit(candidates, limit)
    print(f"Discovered {len(listing)} pokemon; {result.discovered} form candidates; processing {len(keys)}")

    def build(form_id: str) -> Dict[str, Any]:
        resolved = resolve_base_species(client, form_id, species_index)
        return build_form_record(form_id, resolved, relations)

    built = _drain(
        "forms", keys, build, settings, report, result,
        url_for=lambda form_id: client.resource_url("pokemon", form_id),
    )

    forms = {record["formId"]: record for record in built}
    result.written = write_catalog(os.path.join(settings.output_dir, FORMS_FILE), forms)
    return _finish(settings, result, report, relations)


def run_moves_stage(
    settings: PipelineSettings,
    client: PokeApiClient,
    *,
    limit: Optional[int] = None,
) -> StageResult:
    """Build ``moves.json`` with machine codes for the reference version group."""
    report = FailureReport("moves", key_field="name")
    listing = _discover("moves", client, "move", report)
    if listing is None:
        return _finish(settings, StageResult("moves", failed=1), report)
    keys = [entry["name"] for entry in listing]
    result = StageResult("moves", discovered=len(keys))
    keys = _apply_limit(keys, limit)
    print(f"Discovered {result.discovered} move keys; processing {len(keys)}")

    def build(name: str) -> Dict[str, Any]:
        move = _load(client, RawMove.from_payload, "move", name)
        machine = lookup_machine(client, move, settings.machine_version_group)
        return build_move_record(move, machine, language=settings.language)

    built = _drain(
        "moves", keys, build, settings, report, result,
        url_for=lambda name: client.resource_url("move", name),
    )

    moves = {record["name"]: record for record in built}
    result.extra = {"machines": sum(1 for r in built if r.get("machine"))}
    result.written = write_catalog(os.path.join(settings.output_dir, MOVES_FILE), moves)
    return _finish(settings, result, report)


def run_items_stage(
    settings: PipelineSettings,
    client: PokeApiClient,
    *,
    limit: Optional[int] = None,
) -> StageResult:
    """Build ``items.json``; machine items are skipped."""
    report = FailureReport("items", key_field="id")
    listing = _discover("items", client, "item", report)
    if listing is None:
        return _finish(settings, StageResult("items", failed=1), report)
    names = [entry["name"] for entry in listing]
    keys = [name for name in names if not is_machine_item_name(name)]
    result = StageResult("items", discovered=len(names), skipped=len(names) - len(keys))
    keys = _apply_limit(keys, limit)
    print(f"Discovered {result.discovered} item keys; processing {len(keys)}")

    def build(name: str) -> Dict[str, Any]:
        item = _load(client, RawItem.from_payload, "item", name)
        return build_item_record(item, language=settings.language)

    built = _drain(
        "items", keys, build, settings, report, result,
        url_for=lambda name: client.resource_url("item", name),
    )

    items = {record["id"]: record for record in built}
    result.written = write_catalog(os.path.join(settings.output_dir, ITEMS_FILE), items)
    return _finish(settings, result, report)


def run_stages(
    stages: List[str],
    settings: PipelineSettings,
    client: PokeApiClient,
    *,
    limit: Optional[int] = None,
) -> List[StageResult]:
    """Run ``stages`` in order with one shared client and type cache."""
    unknown = [s for s in stages if s not in STAGES]
    if unknown:
        raise ValueError(f"unknown stage(s): {unknown}")
    if "forms" in stages and "species" not in stages:
        load_species_index(settings)

    relations = DamageRelationsCache.from_client(client)
    results = []
    for stage in stages:
        if stage == "species":
            results.append(run_species_stage(settings, client, limit=limit, relations=relations))
        elif stage == "forms":
            results.append(run_forms_stage(settings, client, limit=limit, relations=relations))
        elif stage == "moves":
            results.append(run_moves_stage(settings, client, limit=limit))
        else:
            results.append(run_items_stage(settings, client, limit=limit))
    logger.info("type cache: %d entries, hits=%d misses=%d", len(relations), relations.hits, relations.misses)
    return results


def run_build(
    target: str,
    limit: Optional[int],
    force: bool,
    config_path: str,
    *,
    session: Any = None,
) -> int:
    """CLI entry for ``build <target>``. Returns 0 once the stages complete."""
    settings = PipelineSettings.from_config(load_config(config_path))
    stages = list(STAGES) if target == "all" else [target]
    client = PokeApiClient.from_settings(settings, force=force, session=session)
    results = run_stages(stages, settings, client, limit=limit)
    failed = sum(r.failed for r in results)
    if failed:
        print(f"Completed with {failed} failed item(s); see *.missing.json in {settings.output_dir}")
    return 0
