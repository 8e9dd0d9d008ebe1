"""
Variable registry.

Static mapping from the friendly variable key used in requests to its
canonical unit and provenance. Loaded once at import and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .errors import UnknownVariable


@dataclass(frozen=True)
class VariableSpec:
    """One queryable environmental quantity."""
    key: str
    canonical_unit: str
    source_label: str
    source_code: str


_SPECS = (
    VariableSpec("temperature", "K", "GES_DISC_Dataset_XYZ", "AirTemp_Mean"),
    VariableSpec("precipitation", "mm/hr", "Giovanni_TRMM_Dataset", "Rainfall_Rate"),
    VariableSpec("windspeed", "m/s", "Worldview_Dataset_ABC", "WS10M"),
    # Clearness index is a ratio (0-1)
    VariableSpec("solar_radiation", "unitless", "CERES_SYN_Dataset", "ALLSKY_KT"),
    VariableSpec("relative_humidity", "%", "MODIS_Atmosphere_Data", "RH2M"),
    VariableSpec("solar_insolation", "W/m^2", "CERES_SYN_Dataset", "ALLSKY_SFC_SW_DWN"),
)

REGISTRY: Mapping[str, VariableSpec] = MappingProxyType({s.key: s for s in _SPECS})


def resolve(key: str) -> VariableSpec:
    """Look up a variable key, raising UnknownVariable if it isn't registered."""
    try:
        return REGISTRY[key]
    except KeyError:
        raise UnknownVariable(key) from None
