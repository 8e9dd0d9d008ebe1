"""
Unit conversion for user-supplied thresholds.

Thresholds arrive in whatever unit the caller prefers; samples are always in
the variable's canonical unit. Everything here is a pure function so the
fixed points (32 F = 273.15 K, 212 F = 373.15 K) can be checked directly.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

from .errors import UnsupportedUnitConversion
from .registry import VariableSpec


# Spelling variants people actually type, normalized before lookup.
UNIT_ALIASES: Dict[str, str] = {
    "f": "F",
    "°f": "F",
    "degf": "F",
    "fahrenheit": "F",
    "c": "C",
    "°c": "C",
    "degc": "C",
    "celsius": "C",
    "k": "K",
    "kelvin": "K",
    "mm/h": "mm/hr",
    "mm/hr": "mm/hr",
    "mm/d": "mm/day",
    "mm/day": "mm/day",
    "m/s": "m/s",
    "km/h": "km/h",
    "kph": "km/h",
    "mph": "mph",
    "percent": "%",
    "w/m2": "W/m^2",
    "w/m^2": "W/m^2",
}

# (canonical unit, from unit) -> converter
_CONVERTERS: Dict[Tuple[str, str], Callable[[float], float]] = {
    ("K", "F"): lambda v: (v - 32) * 5 / 9 + 273.15,
    ("K", "C"): lambda v: v + 273.15,
    ("mm/hr", "mm/day"): lambda v: v / 24,
    ("m/s", "km/h"): lambda v: v / 3.6,
    ("m/s", "mph"): lambda v: v * 0.44704,
}


def normalize_unit(unit: str) -> str:
    """Map common spellings to the registry's unit labels."""
    raw = unit.strip()
    return UNIT_ALIASES.get(raw.lower(), raw)


def to_canonical(value: float, from_unit: Optional[str], spec: VariableSpec) -> float:
    """
    Convert a value into the variable's canonical unit.

    A missing/blank unit means the value is already canonical. A unit we have
    no converter for raises UnsupportedUnitConversion.
    """
    if not from_unit or not from_unit.strip():
        return value

    unit = normalize_unit(from_unit)
    if unit == spec.canonical_unit:
        return value

    converter = _CONVERTERS.get((spec.canonical_unit, unit))
    if converter is None:
        raise UnsupportedUnitConversion(from_unit, spec.canonical_unit, spec.key)
    return converter(value)
