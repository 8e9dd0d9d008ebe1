"""
Query orchestration.

Why keep this separate from main.py?
- main.py stays about HTTP (parsing, status codes, streaming)
- the whole pipeline can be unit tested with a stub sample provider
- validation rules live in one place

A query is all-or-nothing: any failure while sampling or converting aborts
it, so callers never see a half-filled result map.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from .errors import EmptyVariableSet, InvalidDayOfYear, InvalidLocation, SampleGenerationError, UnknownVariable
from .models import ExportRow, Query, ThresholdSpec, VariableResult
from .registry import VariableSpec, resolve
from .sample_providers import SampleProvider
from .stats import Evaluation, evaluate


logger = logging.getLogger(__name__)

QueryResult = Dict[str, VariableResult]


def validate_query(query: Query) -> None:
    """
    Business rule validations, run before any sampling.
    """
    if not query.variable_keys:
        raise EmptyVariableSet("At least one variable must be selected.")

    if query.location.has_coordinates and query.location.name:
        raise InvalidLocation("Give either coordinates or a place name, not both.")
    if not query.location.has_coordinates:
        raise InvalidLocation("Location must include numeric latitude and longitude.")
    if not query.location.in_bounds:
        raise InvalidLocation("Latitude must be within [-90, 90] and longitude within [-180, 180].")

    day = query.day_of_year
    if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 366:
        raise InvalidDayOfYear("dayOfYear must be an integer between 1 and 366.")


def resolve_variables(keys: List[str]) -> List[VariableSpec]:
    """Resolve keys in input order, dropping duplicates and unknown keys."""
    specs: List[VariableSpec] = []
    seen = set()
    for key in keys:
        if key in seen:
            continue
        seen.add(key)
        try:
            specs.append(resolve(key))
        except UnknownVariable:
            logger.debug("Skipping unknown variable %r", key)
    return specs


def thresholds_by_variable(thresholds: List[ThresholdSpec]) -> Dict[str, ThresholdSpec]:
    """One threshold per variable; a later duplicate replaces an earlier one."""
    out: Dict[str, ThresholdSpec] = {}
    for t in thresholds:
        if t.variable_key in out:
            logger.warning("Duplicate threshold for %r; using the last one", t.variable_key)
        out[t.variable_key] = t
    return out


def format_threshold_value(value: float) -> str:
    """The caller's number, unabridged: 90.0 -> "90", 0.1 -> "0.1", 1234567.0 -> "1234567"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def explain(
    spec: VariableSpec,
    day_of_year: int,
    evaluation: Evaluation,
    threshold: Optional[ThresholdSpec],
) -> str:
    """Plain-language summary; quotes the threshold the way the caller gave it."""
    text = (
        f"The average {spec.key} for Day {day_of_year} at this location is "
        f"{evaluation.mean:.2f} {spec.canonical_unit}."
    )
    if threshold is not None and evaluation.exceedance_probability_percent is not None:
        text += (
            f" Historical data shows a {evaluation.exceedance_probability_percent:.0f}% chance "
            f"of exceeding the specified threshold "
            f"({format_threshold_value(threshold.value)} {threshold.unit or spec.canonical_unit})."
        )
    return text


def export_rows(query: Query, spec: VariableSpec, series: List[float]) -> List[ExportRow]:
    """One row per sample; year_offset runs -1, -2, ... (most recent year first)."""
    location = query.location.as_dict()
    return [
        ExportRow(
            location=location,
            day_of_year=query.day_of_year,
            year_offset=-(i + 1),
            variable=spec.key,
            value=round(value, 4),
            unit=spec.canonical_unit,
            source=spec.source_label,
        )
        for i, value in enumerate(series)
    ]


async def run_variable(
    query: Query,
    spec: VariableSpec,
    threshold: Optional[ThresholdSpec],
    provider: SampleProvider,
    sample_count: int,
) -> Tuple[VariableResult, List[ExportRow]]:
    series = await provider.generate(spec.key, query.location, query.day_of_year, sample_count)
    if len(series) != sample_count:
        raise SampleGenerationError(
            f"Expected {sample_count} samples for {spec.key!r}, got {len(series)}."
        )

    evaluation = evaluate(series, spec, threshold)
    result = VariableResult(
        mean=evaluation.mean,
        unit=spec.canonical_unit,
        exceedance_probability_percent=evaluation.exceedance_probability_percent,
        explanation=explain(spec, query.day_of_year, evaluation, threshold),
        visual_suggestion=(
            f"A time series graph of the past {sample_count} years' {spec.key} "
            f"for Day {query.day_of_year} is recommended."
        ),
        source_label=spec.source_label,
        source_code=spec.source_code,
    )
    return result, export_rows(query, spec, series)


async def run_query(
    query: Query,
    provider: SampleProvider,
    sample_count: int = 10,
) -> Tuple[QueryResult, List[ExportRow]]:
    """
    Run a query:
    - validate (fails fast, nothing sampled yet)
    - resolve variables, silently dropping unknown keys
    - sample + evaluate every variable concurrently
    - assemble results and rows in input order
    """
    validate_query(query)

    specs = resolve_variables(query.variable_keys)
    thresholds = thresholds_by_variable(query.thresholds)
    logger.info(
        "Running query for day %s: %s",
        query.day_of_year, ", ".join(s.key for s in specs) or "(no known variables)",
    )

    # gather() keeps input order, and the first failure propagates.
    # The query is all-or-nothing, so siblings still in flight are cancelled.
    tasks = [
        asyncio.ensure_future(run_variable(query, spec, thresholds.get(spec.key), provider, sample_count))
        for spec in specs
    ]
    try:
        outcomes = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

    results: QueryResult = {}
    rows: List[ExportRow] = []
    for spec, (result, variable_rows) in zip(specs, outcomes):
        results[spec.key] = result
        rows.extend(variable_rows)
    return results, rows
