"""Unit conversions for PokéAPI physical measurements."""

from __future__ import annotations

from typing import Optional


def _tenths(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value / 10, 1)


def decimeters_to_meters(dm: Optional[float]) -> Optional[float]:
    return _tenths(dm)


def hectograms_to_kg(hg: Optional[float]) -> Optional[float]:
    return _tenths(hg)
