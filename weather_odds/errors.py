"""
Error taxonomy.

Two families matter at the HTTP boundary:
- QueryValidationError: the caller sent something we can't run (4xx)
- QueryProcessingError: we failed while running it (5xx, details stay server-side)

UnknownVariable and ArtifactNotFound sit outside both families because
they are handled on their own (skipped / 404).
"""

from __future__ import annotations


class WeatherQueryError(RuntimeError):
    """Base class for every error raised by the query engine."""

    @property
    def kind(self) -> str:
        """Machine-distinguishable error kind (the class name)."""
        return type(self).__name__


class QueryValidationError(WeatherQueryError):
    """Bad or missing query fields."""
    pass


class EmptyVariableSet(QueryValidationError):
    pass


class InvalidLocation(QueryValidationError):
    pass


class InvalidDayOfYear(QueryValidationError):
    pass


class UnknownVariable(WeatherQueryError):
    """Variable key is not in the registry."""

    def __init__(self, key: str):
        super().__init__(f"Unknown variable: {key!r}")
        self.key = key


class QueryProcessingError(WeatherQueryError):
    """Fatal failure while processing an otherwise valid query."""
    pass


class UnsupportedUnitConversion(QueryProcessingError):
    def __init__(self, from_unit: str, to_unit: str, variable: str):
        super().__init__(f"Cannot convert {from_unit!r} to {to_unit!r} for {variable!r}.")
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.variable = variable


class SampleGenerationError(QueryProcessingError):
    """The sample provider could not produce a series."""
    pass


class SerializationError(QueryProcessingError):
    """An export row could not be written to the tabular artifact."""
    pass


class ArtifactNotFound(WeatherQueryError):
    """Artifact was never created or has already been downloaded."""

    def __init__(self, name: str):
        super().__init__(f"Artifact not found: {name!r}")
        self.name = name
