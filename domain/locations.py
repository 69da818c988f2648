"""
Domain: geographic targeting reference data.

An ad targets one or more (county, state) pairs. Only pairs present in
COUNTIES_BY_STATE are valid: every US county or county equivalent in the 50
states and the District of Columbia (see domain/us_counties.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from domain.us_counties import COUNTIES_BY_STATE


@dataclass(frozen=True, slots=True)
class GeoLocation:
    """A single targeting unit: one county within one state."""

    county: str
    state: str

    @property
    def label(self) -> str:
        return f"{self.county}, {self.state}"

    def to_dict(self) -> Dict[str, str]:
        return {"county": self.county, "state": self.state}


def all_states() -> List[str]:
    """All states with at least one county on the reference list."""
    return sorted(COUNTIES_BY_STATE)


def counties_for_state(state: str) -> List[str]:
    """Counties of `state`, or an empty list for an unknown state."""
    return list(COUNTIES_BY_STATE.get(state, ()))


def is_valid_location(state: str, county: str) -> bool:
    return county in COUNTIES_BY_STATE.get(state, ())


def dedupe_locations(locations: Iterable[GeoLocation]) -> List[GeoLocation]:
    """Drop repeated (county, state) pairs, keeping first-seen order."""

    seen: set[GeoLocation] = set()
    unique: List[GeoLocation] = []
    for location in locations:
        if location not in seen:
            seen.add(location)
            unique.append(location)
    return unique


__all__ = [
    "COUNTIES_BY_STATE",
    "GeoLocation",
    "all_states",
    "counties_for_state",
    "is_valid_location",
    "dedupe_locations",
]
