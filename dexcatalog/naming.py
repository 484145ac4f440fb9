"""Naming helpers.

Centralizes deterministic display-name formatting and URL id parsing.
"""

from __future__ import annotations

import re
from typing import Optional


def slug_titlecase(slug: str) -> str:
    """Convert a PokéAPI slug (kebab-case) to a title-cased display name.

    - Replace '-' with spaces
    - Title Case each token
    - Single-letter tokens are uppercase
    """
    tokens = slug.replace("-", " ").split()
    out_tokens: list[str] = []
    for token in tokens:
        if len(token) == 1:
            out_tokens.append(token.upper())
        else:
            out_tokens.append(token[:1].upper() + token[1:])
    return " ".join(out_tokens)


def capitalize_first(name: str) -> str:
    """Uppercase only the first character (``mr-mime`` -> ``Mr-mime``)."""
    return name[:1].upper() + name[1:]


def id_from_url(url: Optional[str], endpoint: str) -> Optional[int]:
    """Extract the numeric id from a PokéAPI ``/<endpoint>/<id>/`` URL.

    Returns ``None`` when the URL does not match the expected pattern.
    """
    if not isinstance(url, str):
        return None
    m = re.search(rf"/{re.escape(endpoint)}/(\d+)/?$", url)
    return int(m.group(1)) if m else None


def normalize_text(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace in PokéAPI text (which uses newlines and form feeds)."""
    if not value:
        return None
    return re.sub(r"\s+", " ", value.replace("\f", " ").replace("\n", " ")).strip()
