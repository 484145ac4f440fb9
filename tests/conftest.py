from __future__ import annotations

import json
from pathlib import Path

import pytest

from dexcatalog.config import PipelineSettings
from dexcatalog.fetch import PokeApiClient
from dexcatalog.typechart import DamageRelationsCache

from helpers import BASE_URL, FakeSession, make_relations


@pytest.fixture
def relations() -> DamageRelationsCache:
    return make_relations()


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    return PipelineSettings(
        base_url=BASE_URL,
        output_dir=str(tmp_path / "catalog"),
        species_max_id=3,
        concurrency=4,
        throttle_every=2,
        throttle_delay_seconds=0.0,
        max_attempts=2,
        retry_delay_seconds=0.0,
        pipeline_version="test",
    )


@pytest.fixture
def make_client():
    def _make(routes, **kwargs) -> PokeApiClient:
        session = FakeSession(routes)
        kwargs.setdefault("max_attempts", 2)
        kwargs.setdefault("retry_delay_seconds", 0.0)
        return PokeApiClient(BASE_URL, session=session, sleep=lambda _s: None, **kwargs)

    return _make


@pytest.fixture
def write_config(tmp_path: Path):
    def _write(**overrides) -> Path:
        cfg = {
            "pokeapi_base_url": BASE_URL,
            "output_dir": str(tmp_path / "catalog"),
            "species_max_id": 2,
            "concurrency": 2,
            "throttle_every": 25,
            "throttle_delay_seconds": 0,
            "max_attempts": 1,
            "retry_delay_seconds": 0,
            "pipeline_version": "test",
        }
        cfg.update(overrides)
        path = tmp_path / "config.json"
        path.write_text(json.dumps(cfg), encoding="utf-8")
        return path

    return _write
