"""Error taxonomy for the catalog build pipeline."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PreconditionError(RuntimeError):
    """A required local input is missing; the run aborts before any fetch."""


class PayloadError(ValueError):
    """An upstream payload does not have the shape the normalizers expect."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message)


def _should_retry_http(status_code: Optional[int]) -> bool:
    if status_code is None:
        return True
    if status_code == 429:
        return True
    return 500 <= status_code <= 599


class FetchError(RuntimeError):
    """A GET that still failed after every retry attempt."""

    def __init__(
        self,
        url: str,
        *,
        status: Optional[int] = None,
        attempts: int = 1,
        detail: str = "",
    ) -> None:
        self.url = url
        self.status = status
        self.attempts = attempts
        self.detail = detail
        message = f"GET {url} failed after {attempts} attempt(s)"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)

    @property
    def transient(self) -> bool:
        """True when the last failure looked temporary (network, 429, 5xx)."""
        return _should_retry_http(self.status)


class FormResolutionError(RuntimeError):
    """A form candidate whose base species could not be located."""

    def __init__(self, reason: str, **context: Any) -> None:
        self.reason = reason
        self.context: Dict[str, Any] = context
        super().__init__(reason)
