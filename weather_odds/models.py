"""
Domain models.

Plain frozen dataclasses passed between the engine's components. Request
parsing lives in schemas.py; these are what the engine actually runs on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Location:
    """
    Where a query is evaluated.

    Either coordinates or a place name. Place names have to be geocoded
    upstream; the engine itself only runs on coordinates.
    """
    lat: Optional[float] = None
    lon: Optional[float] = None
    name: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return _is_number(self.lat) and _is_number(self.lon)

    @property
    def in_bounds(self) -> bool:
        return self.has_coordinates and -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0

    def as_dict(self) -> Dict[str, object]:
        if self.has_coordinates:
            return {"lat": self.lat, "lon": self.lon}
        return {"name": self.name}


@dataclass(frozen=True)
class ThresholdSpec:
    """User threshold for one variable, in the unit the user typed (None = canonical)."""
    variable_key: str
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class Query:
    location: Location
    day_of_year: int
    variable_keys: List[str]
    thresholds: List[ThresholdSpec] = field(default_factory=list)


@dataclass(frozen=True)
class VariableResult:
    """
    Statistics for one variable.

    exceedance_probability_percent is None when no threshold was given.
    That is "not applicable", which is different from 0% ("never exceeded").
    """
    mean: float
    unit: str
    exceedance_probability_percent: Optional[float]
    explanation: str
    visual_suggestion: str
    source_label: str
    source_code: str


@dataclass(frozen=True)
class ExportRow:
    """One (variable, sample) pair, flattened for the CSV export."""
    location: Dict[str, object]
    day_of_year: int
    year_offset: int
    variable: str
    value: float
    unit: str
    source: str
