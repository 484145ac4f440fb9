"""Catalog writer and failure report generator.

Artifacts are written atomically and with stable key ordering, so rerunning
over unchanged upstream data yields byte-identical files.
"""

from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from .cache.io import atomic_write_json, read_json

SPECIES_FILE = "species.json"
FORMS_FILE = "forms.json"
MOVES_FILE = "moves.json"
ITEMS_FILE = "items.json"
LEARNSETS_FILE = "learnsets.json"
META_FILE = "meta.json"


def report_filename(kind: str) -> str:
    return f"{kind}.missing.json"


def _numeric_sort_key(key: str) -> tuple:
    try:
        return (0, int(key), key)
    except (TypeError, ValueError):
        return (1, 0, str(key))


def sort_records(records: Mapping[Any, Any], numeric_keys: bool = False) -> Dict[str, Any]:
    """Return a new dict keyed by ``str(key)`` in stable order."""
    keys = [str(k) for k in records.keys()]
    by_str = {str(k): v for k, v in records.items()}
    if numeric_keys:
        keys.sort(key=_numeric_sort_key)
    else:
        keys.sort()
    return {k: by_str[k] for k in keys}


def write_catalog(path: str, records: Mapping[Any, Any], numeric_keys: bool = False) -> int:
    """Write one catalog artifact; returns the record count."""
    ordered = sort_records(records, numeric_keys=numeric_keys)
    atomic_write_json(path, ordered)
    return len(ordered)


class FailureReport:
    """Append-only list of entities that failed normalization."""

    def __init__(self, kind: str, key_field: str = "id") -> None:
        self.kind = kind
        self.key_field = key_field
        self._entries: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def add(self, key: Any, reason: str, **context: Any) -> None:
        entry: Dict[str, Any] = {self.key_field: key, "reason": reason}
        for name, value in context.items():
            if value is not None:
                entry[name] = value
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            entries = list(self._entries)
        return sorted(
            entries,
            key=lambda e: (_numeric_sort_key(str(e.get(self.key_field))), e["reason"]),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def write_report(output_dir: str, report: FailureReport) -> str:
    path = os.path.join(output_dir, report_filename(report.kind))
    atomic_write_json(path, report.entries)
    return path


def update_meta(output_dir: str, stage: str, counts: Dict[str, int], **fields: Any) -> None:
    """Merge one stage's counts into ``meta.json``.

    Timestamps live only here so the catalog artifacts stay byte-stable.
    """
    path = os.path.join(output_dir, META_FILE)
    meta = read_json(path)
    if not isinstance(meta, dict):
        meta = {}
    now = datetime.now(timezone.utc).isoformat()
    meta.update(fields)
    meta["source"] = "PokéAPI"
    meta["generated_at"] = now
    stages = meta.get("stages") if isinstance(meta.get("stages"), dict) else {}
    stages[stage] = {"generated_at": now, **counts}
    meta["stages"] = dict(sorted(stages.items()))
    atomic_write_json(path, meta)
