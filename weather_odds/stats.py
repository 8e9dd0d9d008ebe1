"""
Statistics engine.

Mean and threshold-exceedance probability for one sample series. No
rounding happens here; format_* helpers are for the response boundary.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import ThresholdSpec
from .registry import VariableSpec
from .units import to_canonical


logger = logging.getLogger(__name__)

NOT_APPLICABLE = "N/A"


@dataclass(frozen=True)
class Evaluation:
    mean: float
    # None means "no threshold given", never "0%"
    exceedance_probability_percent: Optional[float]
    canonical_threshold: Optional[float] = None


def exceedance_percent(series: Sequence[float], threshold: float) -> float:
    """Share of samples strictly above threshold, as a percentage. Ties don't count."""
    exceeding = sum(1 for v in series if v > threshold)
    return 100 * exceeding / len(series)


def evaluate(
    series: Sequence[float],
    spec: VariableSpec,
    threshold: Optional[ThresholdSpec] = None,
) -> Evaluation:
    """Evaluate a series, converting the threshold into spec's canonical unit first."""
    if not series:
        raise ValueError("Cannot evaluate an empty series.")

    mean = statistics.fmean(series)
    if threshold is None:
        return Evaluation(mean=mean, exceedance_probability_percent=None)

    canonical = to_canonical(threshold.value, threshold.unit, spec)
    logger.debug(
        "Threshold %s %s -> %s %s",
        threshold.value, threshold.unit or spec.canonical_unit, canonical, spec.canonical_unit,
    )
    return Evaluation(
        mean=mean,
        exceedance_probability_percent=exceedance_percent(series, canonical),
        canonical_threshold=canonical,
    )


def format_probability(percent: Optional[float]) -> str:
    """Render "42%" or "N/A". The only place a probability becomes text."""
    if percent is None:
        return NOT_APPLICABLE
    return f"{percent:.0f}%"
