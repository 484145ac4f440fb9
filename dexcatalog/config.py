"""Pipeline configuration loaded from ``config/config.json``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .cache.io import read_json
from .errors import PreconditionError

DEFAULT_CONFIG_PATH = "config/config.json"


def load_config(config_path: str) -> Dict[str, Any]:
    """Load JSON configuration from ``config_path``.

    Raises ``PreconditionError`` if the file is missing or invalid.
    """
    data = read_json(config_path)
    if not data or not isinstance(data, dict):
        raise PreconditionError(f"Missing or invalid config: {config_path}")
    return data


@dataclass(frozen=True)
class PipelineSettings:
    base_url: str = "https://pokeapi.co/api/v2"
    output_dir: str = "data/catalog"
    language: str = "en"
    machine_version_group: str = "sword-shield"
    species_max_id: int = 1025
    concurrency: int = 8
    throttle_every: int = 25
    throttle_delay_seconds: float = 0.35
    max_attempts: int = 3
    retry_delay_seconds: float = 0.8
    request_timeout_seconds: float = 30.0
    include_other_forms: bool = False
    pipeline_version: str = ""
    raw_cache_enabled: bool = False
    raw_cache_dir: str = "data/raw"
    raw_cache_ttl_days: int = 7

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "PipelineSettings":
        raw_cache = cfg.get("raw_cache") or {}
        if not isinstance(raw_cache, dict):
            raw_cache = {}
        return cls(
            base_url=str(cfg.get("pokeapi_base_url", cls.base_url)).rstrip("/"),
            output_dir=str(cfg.get("output_dir", cls.output_dir)),
            language=str(cfg.get("language", cls.language)),
            machine_version_group=str(
                cfg.get("machine_version_group", cls.machine_version_group)
            ),
            species_max_id=int(cfg.get("species_max_id", cls.species_max_id)),
            concurrency=max(1, int(cfg.get("concurrency", cls.concurrency))),
            throttle_every=int(cfg.get("throttle_every", cls.throttle_every)),
            throttle_delay_seconds=float(
                cfg.get("throttle_delay_seconds", cls.throttle_delay_seconds)
            ),
            max_attempts=max(1, int(cfg.get("max_attempts", cls.max_attempts))),
            retry_delay_seconds=float(
                cfg.get("retry_delay_seconds", cls.retry_delay_seconds)
            ),
            request_timeout_seconds=float(
                cfg.get("request_timeout_seconds", cls.request_timeout_seconds)
            ),
            include_other_forms=bool(
                cfg.get("include_other_forms", cls.include_other_forms)
            ),
            pipeline_version=str(cfg.get("pipeline_version", cls.pipeline_version)),
            raw_cache_enabled=bool(raw_cache.get("enabled", cls.raw_cache_enabled)),
            raw_cache_dir=str(raw_cache.get("dir", cls.raw_cache_dir)),
            raw_cache_ttl_days=int(raw_cache.get("ttl_days", cls.raw_cache_ttl_days)),
        )
