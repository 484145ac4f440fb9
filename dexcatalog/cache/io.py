"""File-based JSON helpers.

Provides:
- filesystem-safe key normalization
- atomic, byte-stable JSON writes for catalog artifacts
- a TTL-aware raw response cache keyed by request URL
"""

import json
import os
import re
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_-]+")


def ensure_dir(path: str) -> None:
    """Create a directory (and parents) if missing."""
    if path:
        os.makedirs(path, exist_ok=True)


def safe_filename(name: str) -> str:
    """Convert an arbitrary key into a filesystem-safe filename stem.

    Allowed characters: ``a-z``, ``0-9``, ``-``, ``_``.
    """
    name = name.strip().lower()
    safe = SAFE_FILENAME_RE.sub("_", name)
    safe = re.sub(r"_+", "_", safe).strip("_")
    return safe or "unnamed"


def read_json(path: str) -> Optional[Any]:
    """Read JSON from disk; return None if missing or invalid."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


def dumps_stable(obj: Any) -> str:
    """Serialize ``obj`` the same way every time (used for every artifact)."""
    return json.dumps(obj, ensure_ascii=False, indent=2, separators=(",", ": ")) + "\n"


def atomic_write_json(path: str, obj: Any) -> None:
    """Atomically write a JSON file by writing a temp file then renaming.

    A crash mid-serialization leaves the previous file (or no file) in place,
    never a truncated one.
    """
    directory = os.path.dirname(path) or "."
    ensure_dir(directory)
    text = dumps_stable(obj)
    fd, tmp_path = tempfile.mkstemp(
        prefix=os.path.basename(path) + ".",
        suffix=".tmp",
        dir=directory,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_path, path)
    finally:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass


def fetched_at(wrapped: Any) -> Optional[datetime]:
    """Return the UTC fetch time recorded by :func:`wrap_raw`, if readable."""
    meta = wrapped.get("_meta") if isinstance(wrapped, dict) else None
    stamp = meta.get("fetched_at") if isinstance(meta, dict) else None
    if not isinstance(stamp, str):
        return None
    try:
        dt = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_stale(wrapped: Any, ttl_days: int, now: Optional[datetime] = None) -> bool:
    """True unless ``wrapped`` carries a payload fetched within ``ttl_days``."""
    stamp = fetched_at(wrapped)
    if stamp is None or "data" not in wrapped:
        return True
    return (now or datetime.now(timezone.utc)) - stamp > timedelta(days=ttl_days)


def wrap_raw(url: str, payload: Any) -> Dict[str, Any]:
    """Wrap an unmodified API payload with required `_meta` fields."""
    return {
        "_meta": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
            "url": url,
        },
        "data": payload,
    }


class RawCache:
    """Disk cache of raw upstream responses, one file per request URL."""

    def __init__(self, root: str, ttl_days: int = 7, force: bool = False) -> None:
        self.root = root
        self.ttl_days = ttl_days
        self.force = force

    def path_for(self, url: str) -> str:
        parts = urlsplit(url)
        stem = parts.path
        if parts.query:
            stem += "_" + parts.query
        return os.path.join(self.root, safe_filename(stem) + ".json")

    def load(self, url: str) -> Optional[Any]:
        """Return the cached payload for ``url`` or None when absent/stale."""
        if self.force:
            return None
        wrapped = read_json(self.path_for(url))
        if is_stale(wrapped, self.ttl_days):
            return None
        return wrapped["data"]

    def store(self, url: str, payload: Any) -> None:
        atomic_write_json(self.path_for(url), wrap_raw(url, payload))
