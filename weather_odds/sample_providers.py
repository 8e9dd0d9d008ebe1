"""
Sample providers.

A sample provider turns (variable, location, day-of-year) into a short
historical series, one value per past year, most recent first.

Two implementations:
- SyntheticSampleProvider: draws from a plausible per-variable range
  (stand-in while no archive is wired up; NOT reproducible between calls)
- PowerArchiveSampleProvider: reads daily point data from NASA POWER

Which one runs is decided once at startup by build_sample_provider().
"""

from __future__ import annotations

import calendar
import logging
import random
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import httpx

from .errors import SampleGenerationError
from .models import Location
from .settings import Settings


logger = logging.getLogger(__name__)


class SampleProvider(Protocol):
    """Anything able to produce a historical series for one variable."""

    async def generate(
        self,
        variable_key: str,
        location: Location,
        day_of_year: int,
        sample_count: int,
    ) -> List[float]:
        """Return sample_count values in the variable's canonical unit, most recent year first."""
        ...


# Uniform [low, high) draws, in canonical units.
SYNTHETIC_RANGES: Dict[str, Tuple[float, float]] = {
    # 273.15 K is 0 C; surface temps sit in the high 200s to low 300s
    "temperature": (273.15, 323.15),
    "precipitation": (0.5, 10.5),
    "windspeed": (0.5, 10.5),
    "relative_humidity": (20.0, 80.0),
    "solar_insolation": (200.0, 700.0),
    "solar_radiation": (0.3, 0.8),
}


class SyntheticSampleProvider:
    """Random samples from SYNTHETIC_RANGES. Location and day are ignored."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def generate(
        self,
        variable_key: str,
        location: Location,
        day_of_year: int,
        sample_count: int,
    ) -> List[float]:
        if variable_key not in SYNTHETIC_RANGES:
            raise SampleGenerationError(f"No synthetic range for {variable_key!r}.")
        if sample_count < 1:
            raise SampleGenerationError("sample_count must be >= 1.")

        low, high = SYNTHETIC_RANGES[variable_key]
        return [self.rng.uniform(low, high) for _ in range(sample_count)]


# variable key -> (POWER parameter, rescale into canonical unit)
POWER_PARAMETERS: Dict[str, Tuple[str, Callable[[float], float]]] = {
    "temperature": ("T2M", lambda v: v + 273.15),                 # C -> K
    "precipitation": ("PRECTOTCORR", lambda v: v / 24),          # mm/day -> mm/hr
    "windspeed": ("WS10M", lambda v: v),
    "solar_radiation": ("ALLSKY_KT", lambda v: v),
    "relative_humidity": ("RH2M", lambda v: v),
    "solar_insolation": ("ALLSKY_SFC_SW_DWN", lambda v: v * 1000 / 24),  # kWh/m^2/day -> W/m^2
}

POWER_FILL_VALUE = -999.0


def day_in_year(year: int, day_of_year: int) -> date:
    """Calendar date for a day-of-year; day 366 clamps to Dec 31 in common years."""
    last = 366 if calendar.isleap(year) else 365
    return date(year, 1, 1) + timedelta(days=min(day_of_year, last) - 1)


class PowerArchiveSampleProvider:
    """
    NASA POWER daily point API.

    One request covers the last `sample_count` complete years; we then pick
    the requested day out of each year.

    Endpoint:
        /api/temporal/daily/point?parameters=T2M&community=RE
            &latitude=..&longitude=..&start=YYYYMMDD&end=YYYYMMDD&format=JSON
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        today: Optional[Callable[[], date]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.today = today or date.today
        self.transport = transport

    async def generate(
        self,
        variable_key: str,
        location: Location,
        day_of_year: int,
        sample_count: int,
    ) -> List[float]:
        if variable_key not in POWER_PARAMETERS:
            raise SampleGenerationError(f"No archive parameter for {variable_key!r}.")
        if not location.has_coordinates:
            raise SampleGenerationError("Archive lookups need coordinates.")

        parameter, rescale = POWER_PARAMETERS[variable_key]
        last_year = self.today().year - 1
        years = [last_year - i for i in range(sample_count)]

        params = {
            "parameters": parameter,
            "community": "RE",
            "latitude": location.lat,
            "longitude": location.lon,
            "start": f"{years[-1]}0101",
            "end": f"{last_year}1231",
            "format": "JSON",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            raise SampleGenerationError(f"Archive request failed: {e}") from e

        if r.status_code != 200:
            raise SampleGenerationError(f"Archive request failed ({r.status_code}): {r.text}")

        try:
            daily = r.json()["properties"]["parameter"][parameter]
        except (ValueError, KeyError, TypeError) as e:
            raise SampleGenerationError("Unexpected archive payload.") from e
        if not isinstance(daily, dict):
            raise SampleGenerationError(f"Unexpected archive payload for {parameter}.")

        # Each position maps to a year offset, so a gap can't just be skipped.
        out: List[float] = []
        for year in years:
            stamp = day_in_year(year, day_of_year).strftime("%Y%m%d")
            raw = daily.get(stamp)
            if raw is None:
                raise SampleGenerationError(f"Archive has no {parameter} value for {stamp}.")
            try:
                value = float(raw)
            except (TypeError, ValueError) as e:
                raise SampleGenerationError(f"Non-numeric {parameter} value for {stamp}: {raw!r}") from e
            if value == POWER_FILL_VALUE:
                raise SampleGenerationError(f"Archive has no {parameter} value for {stamp}.")
            out.append(rescale(value))

        logger.debug("Fetched %d %s samples for day %s", len(out), parameter, day_of_year)
        return out


def build_sample_provider(settings: Settings) -> SampleProvider:
    """Pick the configured provider."""
    if settings.sample_provider == "power":
        return PowerArchiveSampleProvider(settings.power_api_base, timeout_s=settings.power_timeout_s)
    return SyntheticSampleProvider()
