"""HTTP fetch client and retry layer for PokéAPI resources.

All upstream traffic goes through :class:`PokeApiClient`. Every GET runs
inside :func:`fetch_with_retry`, which retries with a fixed delay and turns a
404 into a :class:`NotFound` value only when the caller asks for it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import pokebase
import pokebase.common as pokebase_common
import requests

from .cache.io import RawCache
from .config import PipelineSettings
from .errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "dexcatalog/1.0 (catalog build pipeline)"


@dataclass(frozen=True)
class NotFound:
    """Typed result for a 404 when the caller passed ``allow_not_found``."""

    url: str


def _configure_pokebase_base_url(base_url: str) -> None:
    """Configure pokebase to use the configured PokéAPI base URL."""
    pokebase_common.BASE_URL = base_url.rstrip("/")


def _extract_status_code(exc: BaseException) -> Optional[int]:
    resp = getattr(exc, "response", None)
    return getattr(resp, "status_code", None)


def fetch_with_retry(
    session: Any,
    url: str,
    *,
    max_attempts: int = 3,
    delay_seconds: float = 0.8,
    timeout_seconds: float = 30.0,
    allow_not_found: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """GET ``url`` and decode its JSON body.

    Any failure (network error, non-2xx status, undecodable body) is retried
    up to ``max_attempts - 1`` more times with a fixed ``delay_seconds``
    pause. With ``allow_not_found`` a 404 returns ``NotFound(url)`` at once;
    otherwise a 404 is retried like any other error.

    Raises ``FetchError`` once every attempt has failed.
    """
    max_attempts = max(1, max_attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            resp = session.get(url, timeout=timeout_seconds)
            if resp.status_code == 404 and allow_not_found:
                return NotFound(url)
            resp.raise_for_status()
            return resp.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            status = _extract_status_code(exc)
            if attempt >= max_attempts:
                raise FetchError(
                    url, status=status, attempts=attempt, detail=str(exc)
                ) from exc
            logger.warning(
                "GET %s failed (attempt %d/%d, status=%s); retrying in %.2fs",
                url,
                attempt,
                max_attempts,
                status,
                delay_seconds,
            )
        if delay_seconds > 0:
            sleep(delay_seconds)


class PokeApiClient:
    """Thread-safe read client for the PokéAPI REST endpoints."""

    def __init__(
        self,
        base_url: str = "https://pokeapi.co/api/v2",
        *,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.8,
        timeout_seconds: float = 30.0,
        session: Any = None,
        raw_cache: Optional[RawCache] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        _configure_pokebase_base_url(self.base_url)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        self.session = session
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.raw_cache = raw_cache
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        *,
        force: bool = False,
        session: Any = None,
    ) -> "PokeApiClient":
        raw_cache = None
        if settings.raw_cache_enabled:
            raw_cache = RawCache(
                settings.raw_cache_dir, ttl_days=settings.raw_cache_ttl_days, force=force
            )
        return cls(
            settings.base_url,
            max_attempts=settings.max_attempts,
            retry_delay_seconds=settings.retry_delay_seconds,
            timeout_seconds=settings.request_timeout_seconds,
            session=session,
            raw_cache=raw_cache,
        )

    def resource_url(self, endpoint: str, key: str | int) -> str:
        """Build the detail URL for ``endpoint``/``key``.

        Numeric ids go through pokebase's URL builder; slugs are appended
        directly since pokebase only accepts integer ids.
        """
        if isinstance(key, int) and not isinstance(key, bool):
            return pokebase_common.api_url_build(endpoint, key)
        pokebase_common.validate(endpoint)
        return f"{self.base_url}/{endpoint}/{str(key).strip().lower()}"

    def get_json(self, url: str, *, allow_not_found: bool = False) -> Any:
        """GET ``url`` with retries, consulting the raw cache when enabled."""
        if self.raw_cache is not None:
            cached = self.raw_cache.load(url)
            if cached is not None:
                return cached

        result = fetch_with_retry(
            self.session,
            url,
            max_attempts=self.max_attempts,
            delay_seconds=self.retry_delay_seconds,
            timeout_seconds=self.timeout_seconds,
            allow_not_found=allow_not_found,
            sleep=self._sleep,
        )
        if self.raw_cache is not None and not isinstance(result, NotFound):
            self.raw_cache.store(url, result)
        return result

    def get_resource(
        self, endpoint: str, key: str | int, *, allow_not_found: bool = False
    ) -> Any:
        return self.get_json(self.resource_url(endpoint, key), allow_not_found=allow_not_found)

    def list_resources(self, endpoint: str, limit: int) -> List[Dict[str, str]]:
        """Return ``[{name, url}]`` from a listing endpoint.

        Falls back to ``pokebase.APIResourceList`` if the HTTP listing is empty.
        """
        pokebase_common.validate(endpoint)
        url = f"{self.base_url}/{endpoint}?limit={limit}&offset=0"
        payload = self.get_json(url)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not results:
            logger.info("Listing %s returned no results; falling back to pokebase", url)
            try:
                results = list(pokebase.APIResourceList(endpoint))
            except requests.exceptions.RequestException as exc:
                raise FetchError(url, status=_extract_status_code(exc), detail=str(exc)) from exc

        entries: List[Dict[str, str]] = []
        for r in results:
            if not isinstance(r, dict) or not isinstance(r.get("name"), str):
                continue
            entries.append({"name": r["name"], "url": str(r.get("url") or "")})
        return entries
