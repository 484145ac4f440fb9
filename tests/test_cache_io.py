from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from dexcatalog.cache.io import RawCache, dumps_stable, is_stale, read_json, safe_filename, wrap_raw


def test_safe_filename() -> None:
    assert safe_filename("/api/v2/pokemon/Mr. Mime") == "api_v2_pokemon_mr_mime"
    assert safe_filename("???") == "unnamed"


def test_dumps_stable_format() -> None:
    assert dumps_stable({"a": [1], "é": None}) == '{\n  "a": [\n    1\n  ],\n  "é": null\n}\n'


def test_is_stale() -> None:
    assert is_stale(None, 7)
    assert is_stale({"data": {}}, 7)
    assert not is_stale(wrap_raw("u", {}), 7)

    old = (datetime.now(timezone.utc) - timedelta(days=8)).isoformat()
    assert is_stale({"_meta": {"fetched_at": old}, "data": {}}, 7)


def test_raw_cache_roundtrip_and_query_paths(tmp_path: Path) -> None:
    cache = RawCache(str(tmp_path))
    cache.store("https://x/api/v2/move?limit=5&offset=0", {"results": []})

    assert cache.load("https://x/api/v2/move?limit=5&offset=0") == {"results": []}
    assert cache.load("https://x/api/v2/move?limit=6&offset=0") is None
    stored = read_json(cache.path_for("https://x/api/v2/move?limit=5&offset=0"))
    assert stored["_meta"]["url"] == "https://x/api/v2/move?limit=5&offset=0"
