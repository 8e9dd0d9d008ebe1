"""
Pydantic schemas.

Defines the contract of the REST endpoints. Deliberately loose on the
fields the engine validates itself (empty variable list, missing
coordinates, day range) so those come back as typed error kinds instead of
generic body-validation errors.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Location, Query, ThresholdSpec, VariableResult
from .stats import format_probability


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (dayOfYear, queryResults, ...)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationIn(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None
    name: Optional[str] = Field(None, max_length=255)


class ThresholdIn(BaseModel):
    variable: str
    value: float
    unit: Optional[str] = Field(None, max_length=32)


class QueryIn(CamelModel):
    """
    Payload for a statistics query:
    location + day of year + variables (+ optional thresholds).
    """
    location: LocationIn = Field(default_factory=LocationIn)
    day_of_year: Optional[int] = None
    variables: List[str] = Field(default_factory=list)
    thresholds: List[ThresholdIn] = Field(default_factory=list)

    def to_query(self) -> Query:
        return Query(
            location=Location(lat=self.location.lat, lon=self.location.lon, name=self.location.name),
            day_of_year=self.day_of_year,
            variable_keys=list(self.variables),
            thresholds=[ThresholdSpec(t.variable, t.value, t.unit) for t in self.thresholds],
        )


class VariableResultOut(CamelModel):
    """
    One variable's statistics as returned to the client.

    exceedanceProbabilityPercent is null when no threshold was given;
    probabilityExceedingThreshold is the display form ("42%" or "N/A").
    """
    mean: float
    unit: str
    exceedance_probability_percent: Optional[float]
    probability_exceeding_threshold: str
    explanation: str
    visual_suggestion: str
    source_label: str
    source_code: str

    @classmethod
    def from_result(cls, result: VariableResult) -> "VariableResultOut":
        return cls(
            mean=round(result.mean, 2),
            unit=result.unit,
            exceedance_probability_percent=result.exceedance_probability_percent,
            probability_exceeding_threshold=format_probability(result.exceedance_probability_percent),
            explanation=result.explanation,
            visual_suggestion=result.visual_suggestion,
            source_label=result.source_label,
            source_code=result.source_code,
        )


class QueryResponse(CamelModel):
    status: str = "Success"
    query_results: Dict[str, VariableResultOut]
    download_link: str
    visualizations: List[str]

    @classmethod
    def build(cls, results: Dict[str, VariableResult], download_link: str) -> "QueryResponse":
        return cls(
            query_results={k: VariableResultOut.from_result(r) for k, r in results.items()},
            download_link=download_link,
            visualizations=[r.visual_suggestion for r in results.values()],
        )


class ErrorOut(BaseModel):
    kind: str
    msg: str
