"""Workbook export for the built catalog.

Writes ``<output_dir>/catalog.xlsx`` from the JSON artifacts only:
- Species, Forms, Moves, Items, Learnsets, Failures and Meta sheets
- column order is fixed per sheet
- no derived logic; the export never modifies the catalog
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from openpyxl import Workbook

from .cache.io import ensure_dir, read_json
from .catalog import (
    FORMS_FILE,
    ITEMS_FILE,
    LEARNSETS_FILE,
    META_FILE,
    MOVES_FILE,
    SPECIES_FILE,
    report_filename,
)
from .config import PipelineSettings, load_config
from .errors import PreconditionError
from .pipeline import STAGES

EXPORT_FILE = "catalog.xlsx"

# key fields used by the per-stage failure reports
REPORT_KEY_FIELDS = ("id", "formId", "name")

STAT_COLUMNS = ["hp", "attack", "defense", "specialAttack", "specialDefense", "speed"]


def _read_catalog(output_dir: str, filename: str, required: bool = False) -> Dict[str, Any]:
    path = os.path.join(output_dir, filename)
    data = read_json(path)
    if isinstance(data, dict):
        return data
    if required:
        raise PreconditionError(f"Missing or invalid catalog artifact: {path}")
    return {}


def _write_row(ws: Any, values: List[Any]) -> None:
    ws.append(values)


def _slot(values: List[Any], index: int) -> Optional[Any]:
    return values[index] if len(values) > index else None


def _joined(values: Any) -> str:
    if not isinstance(values, list):
        return ""
    return ",".join(str(v) for v in values)


def _matchup_cells(matchups: Any) -> List[str]:
    m = matchups if isinstance(matchups, dict) else {}
    return [
        _joined(m.get("immune")),
        _joined([f"{r['type']}x{r['multiplier']:g}" for r in m.get("resist") or []]),
        _joined([f"{r['type']}x{r['multiplier']:g}" for r in m.get("weak") or []]),
    ]


def _ability_cells(abilities: Any) -> List[Optional[str]]:
    regular = [a.get("abilityId") for a in abilities or [] if not a.get("isHidden")]
    hidden = [a.get("abilityId") for a in abilities or [] if a.get("isHidden")]
    return [_slot(regular, 0), _slot(regular, 1), _slot(hidden, 0)]


def _stat_cells(base_stats: Any) -> List[Any]:
    stats = base_stats if isinstance(base_stats, dict) else {}
    values = [stats.get(k) for k in STAT_COLUMNS]
    return values + [sum(v for v in values if isinstance(v, int))]


def _new_sheet(wb: Workbook, title: str, headers: List[str]) -> Any:
    ws = wb.create_sheet(title)
    _write_row(ws, headers)
    ws.freeze_panes = "A2"
    return ws


def _species_sheet(wb: Workbook, species: Dict[str, Any]) -> None:
    ws = _new_sheet(
        wb,
        "Species",
        ["DEX_ID", "NAME", "GENERATION", "TYPE1", "TYPE2", "HP", "ATK", "DEF", "SPA",
         "SPD", "SPE", "TOTAL", "ABILITY1", "ABILITY2", "HIDDEN_ABILITY", "EGG_GROUPS",
         "HEIGHT_M", "WEIGHT_KG", "STEPS_TO_HATCH", "CAPTURE_RATE", "LEGENDARY",
         "MYTHICAL", "IMMUNE", "RESIST", "WEAK", "SPRITE", "SHINY_SPRITE",
         "SPRITE_SOURCE", "EVOLUTION_CHAIN"],
    )
    for rec in species.values():
        types = rec.get("types") or []
        physical = rec.get("physical") or {}
        flags = rec.get("flags") or {}
        sprites = rec.get("sprites") or {}
        row: List[Any] = [rec.get("id"), rec.get("name"), rec.get("generation"),
                          _slot(types, 0), _slot(types, 1)]
        row += _stat_cells(rec.get("baseStats"))
        row += _ability_cells(rec.get("abilities"))
        row += [
            _joined(rec.get("eggGroups")),
            physical.get("heightMeters"),
            physical.get("weightKg"),
            (rec.get("incubation") or {}).get("stepsToHatch"),
            rec.get("captureRate"),
            flags.get("legendary"),
            flags.get("mythical"),
        ]
        row += _matchup_cells(rec.get("typeMatchups"))
        row += [
            sprites.get("default"),
            sprites.get("shiny"),
            sprites.get("source"),
            (rec.get("evolutions") or {}).get("chainId"),
        ]
        _write_row(ws, row)


def _forms_sheet(wb: Workbook, forms: Dict[str, Any]) -> None:
    ws = _new_sheet(
        wb,
        "Forms",
        ["FORM_ID", "BASE_SPECIES_ID", "FORM_TYPE", "DISPLAY_NAME", "TYPE1", "TYPE2",
         "HP", "ATK", "DEF", "SPA", "SPD", "SPE", "TOTAL", "ABILITY1", "ABILITY2",
         "HIDDEN_ABILITY", "IMMUNE", "RESIST", "WEAK", "SPRITE", "SHINY_SPRITE",
         "SPRITE_SOURCE"],
    )
    for rec in forms.values():
        types = rec.get("types") or []
        sprites = rec.get("sprites") or {}
        row: List[Any] = [rec.get("formId"), rec.get("baseSpeciesId"), rec.get("formType"),
                          rec.get("displayName"), _slot(types, 0), _slot(types, 1)]
        row += _stat_cells(rec.get("baseStats"))
        row += _ability_cells(rec.get("abilities"))
        row += _matchup_cells(rec.get("typeMatchups"))
        row += [sprites.get("default"), sprites.get("shiny"), sprites.get("source")]
        _write_row(ws, row)


def _moves_sheet(wb: Workbook, moves: Dict[str, Any]) -> None:
    ws = _new_sheet(
        wb,
        "Moves",
        ["MOVE_ID", "NAME", "TYPE", "DAMAGE_CLASS", "POWER", "ACCURACY", "PP",
         "PRIORITY", "TARGET", "STATUS_AILMENT", "STATUS_CHANCE", "STAT_CHANGES",
         "STAT_CHANGE_CHANCE", "FLAGS", "MACHINE", "MACHINE_KIND", "EFFECT"],
    )
    for rec in moves.values():
        machine = rec.get("machine") or {}
        changes = [f"{c.get('stat')}:{c.get('stages')}" for c in rec.get("statChanges") or []]
        _write_row(
            ws,
            [
                rec.get("id"),
                rec.get("name"),
                rec.get("type"),
                rec.get("damageClass"),
                rec.get("power"),
                rec.get("accuracy"),
                rec.get("pp"),
                rec.get("priority"),
                rec.get("target"),
                rec.get("statusAilment"),
                rec.get("statusChance"),
                _joined(changes),
                rec.get("statChangeChance"),
                _joined(rec.get("flags")),
                machine.get("machineCode"),
                machine.get("machineKind"),
                rec.get("effectText"),
            ],
        )


def _items_sheet(wb: Workbook, items: Dict[str, Any], moves: Dict[str, Any]) -> None:
    ws = _new_sheet(
        wb,
        "Items",
        ["ITEM_ID", "NAME", "CATEGORY", "SUB_CATEGORY", "PRICE", "CONSUMABLE",
         "BATTLE_USABLE", "OVERWORLD_USABLE", "TEACHES_MOVE", "DESCRIPTION", "SPRITE"],
    )
    rows = list(items.values())
    rows += sorted(
        (m["machineItem"] for m in moves.values() if isinstance(m.get("machineItem"), dict)),
        key=lambda item: item.get("id") or "",
    )
    for rec in rows:
        _write_row(
            ws,
            [
                rec.get("id"),
                rec.get("name"),
                rec.get("category"),
                rec.get("subCategory"),
                rec.get("price"),
                rec.get("consumable"),
                rec.get("battleUsable"),
                rec.get("overworldUsable"),
                rec.get("moveId"),
                rec.get("description"),
                rec.get("sprite"),
            ],
        )


def _learnsets_sheet(wb: Workbook, learnsets: Dict[str, Any]) -> None:
    ws = _new_sheet(wb, "Learnsets", ["DEX_ID", "MOVE_ID", "METHOD", "LEVEL"])
    for dex_id, learnset in learnsets.items():
        for entry in (learnset or {}).get("moves") or []:
            _write_row(ws, [int(dex_id), entry.get("moveId"), entry.get("method"), entry.get("level")])


def _failures_sheet(wb: Workbook, output_dir: str) -> None:
    ws = _new_sheet(wb, "Failures", ["STAGE", "KEY", "REASON", "DETAIL"])
    for stage in STAGES:
        entries = read_json(os.path.join(output_dir, report_filename(stage)))
        for entry in entries if isinstance(entries, list) else []:
            key_field = next((f for f in REPORT_KEY_FIELDS if f in entry), None)
            key = entry.get(key_field) if key_field else None
            detail = {k: v for k, v in entry.items() if k not in (key_field, "reason")}
            _write_row(
                ws,
                [stage, key, entry.get("reason"),
                 ", ".join(f"{k}={v}" for k, v in sorted(detail.items()))],
            )


def _meta_sheet(wb: Workbook, meta: Dict[str, Any], settings: PipelineSettings) -> None:
    ws = _new_sheet(wb, "Meta", ["KEY", "VALUE"])
    rows: List[List[Any]] = [
        ["generated_at", meta.get("generated_at")],
        ["source", meta.get("source")],
        ["pokeapi_base_url", settings.base_url],
        ["language", settings.language],
        ["machine_version_group", meta.get("machineVersionGroup")],
        ["pipeline_version", meta.get("pipelineVersion")],
    ]
    stages = meta.get("stages") if isinstance(meta.get("stages"), dict) else {}
    for stage, counts in stages.items():
        for name, value in (counts or {}).items():
            rows.append([f"{stage}.{name}", value])
    for r in rows:
        _write_row(ws, r)


def run_export_workbook(config_path: str = "config/config.json") -> int:
    """Export the catalog artifacts into one workbook."""
    settings = PipelineSettings.from_config(load_config(config_path))
    out_dir = settings.output_dir

    species = _read_catalog(out_dir, SPECIES_FILE, required=True)
    forms = _read_catalog(out_dir, FORMS_FILE)
    moves = _read_catalog(out_dir, MOVES_FILE)
    items = _read_catalog(out_dir, ITEMS_FILE)
    learnsets = _read_catalog(out_dir, LEARNSETS_FILE)
    meta = _read_catalog(out_dir, META_FILE)

    ensure_dir(out_dir)
    wb = Workbook()
    # Remove default sheet so we control sheet order.
    default_ws = wb.active
    if default_ws is not None:
        wb.remove(default_ws)

    _species_sheet(wb, species)
    _forms_sheet(wb, forms)
    _moves_sheet(wb, moves)
    _items_sheet(wb, items, moves)
    _learnsets_sheet(wb, learnsets)
    _failures_sheet(wb, out_dir)
    _meta_sheet(wb, meta, settings)

    export_path = os.path.join(out_dir, EXPORT_FILE)
    wb.save(export_path)
    print(f"export workbook: wrote {export_path}")
    return 0
