"""Tests for the retry wrapper and the PokéAPI client."""

from __future__ import annotations

import pytest
import requests

from dexcatalog.cache.io import RawCache
from dexcatalog.errors import FetchError
from dexcatalog.fetch import NotFound, PokeApiClient, fetch_with_retry

from helpers import BASE_URL, FakeResponse, FakeSession, listing


URL = f"{BASE_URL}/pokemon/bulbasaur"


def test_retries_then_succeeds() -> None:
    session = FakeSession({"pokemon/bulbasaur": [500, {"id": 1, "name": "bulbasaur"}]})
    sleeps = []

    payload = fetch_with_retry(session, URL, max_attempts=3, delay_seconds=0.8, sleep=sleeps.append)

    assert payload["id"] == 1
    assert session.count("pokemon/bulbasaur") == 2
    assert sleeps == [0.8]


def test_allow_not_found_returns_typed_result_without_retry() -> None:
    session = FakeSession({"pokemon/bulbasaur": 404})
    sleeps = []

    result = fetch_with_retry(session, URL, allow_not_found=True, sleep=sleeps.append)

    assert result == NotFound(URL)
    assert session.count("pokemon/bulbasaur") == 1
    assert sleeps == []


def test_not_found_is_retried_by_default() -> None:
    session = FakeSession({"pokemon/bulbasaur": 404})
    sleeps = []

    with pytest.raises(FetchError) as info:
        fetch_with_retry(session, URL, max_attempts=3, delay_seconds=0.8, sleep=sleeps.append)

    assert info.value.status == 404
    assert info.value.attempts == 3
    assert not info.value.transient
    assert session.count("pokemon/bulbasaur") == 3
    assert sleeps == [0.8, 0.8]


def test_network_error_is_transient() -> None:
    session = FakeSession({"pokemon/bulbasaur": requests.exceptions.ConnectionError("reset")})

    with pytest.raises(FetchError) as info:
        fetch_with_retry(session, URL, max_attempts=2, delay_seconds=0, sleep=lambda _s: None)

    assert info.value.status is None
    assert info.value.transient
    assert info.value.url == URL


def test_undecodable_body_is_retried() -> None:
    session = FakeSession(
        {"pokemon/bulbasaur": [FakeResponse(200, bad_json=True), {"id": 1, "name": "bulbasaur"}]}
    )
    payload = fetch_with_retry(session, URL, max_attempts=2, delay_seconds=0, sleep=lambda _s: None)
    assert payload["name"] == "bulbasaur"


@pytest.mark.parametrize("status, transient", [(429, True), (503, True), (400, False)])
def test_transient_classification(status, transient) -> None:
    assert FetchError(URL, status=status).transient is transient


def test_resource_url_for_slugs_and_ids(make_client) -> None:
    client = make_client({})
    assert client.resource_url("pokemon", "Charizard-Mega-X") == f"{BASE_URL}/pokemon/charizard-mega-x"
    assert client.resource_url("pokemon-species", 6).rstrip("/") == f"{BASE_URL}/pokemon-species/6"


def test_list_resources(make_client) -> None:
    client = make_client({"move": listing("move", ["pound", "karate-chop"])})
    entries = client.list_resources("move", 10)
    assert [e["name"] for e in entries] == ["pound", "karate-chop"]
    assert entries[0]["url"].endswith("/move/pound/")


def test_raw_cache_serves_fresh_entries(tmp_path) -> None:
    session = FakeSession({"pokemon/bulbasaur": {"id": 1, "name": "bulbasaur"}})
    cache = RawCache(str(tmp_path / "raw"), ttl_days=7)
    client = PokeApiClient(BASE_URL, session=session, raw_cache=cache, sleep=lambda _s: None)

    first = client.get_resource("pokemon", "bulbasaur")
    second = client.get_resource("pokemon", "bulbasaur")

    assert first == second == {"id": 1, "name": "bulbasaur"}
    assert session.count("pokemon/bulbasaur") == 1


def test_raw_cache_force_refetches(tmp_path) -> None:
    session = FakeSession({"pokemon/bulbasaur": {"id": 1, "name": "bulbasaur"}})
    root = str(tmp_path / "raw")
    warm = PokeApiClient(BASE_URL, session=session, raw_cache=RawCache(root), sleep=lambda _s: None)
    warm.get_resource("pokemon", "bulbasaur")

    forced = PokeApiClient(
        BASE_URL, session=session, raw_cache=RawCache(root, force=True), sleep=lambda _s: None
    )
    forced.get_resource("pokemon", "bulbasaur")

    assert session.count("pokemon/bulbasaur") == 2
