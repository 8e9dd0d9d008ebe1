"""Shared fixtures: a fixed-series provider and a wired-up test client."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.fakes import TEMPERATURE_SERIES, WIND_SERIES, FixedSampleProvider
from weather_odds.artifacts import ExportManager, InMemoryArtifactStore
from weather_odds.main import app, get_export_manager, get_sample_provider


@pytest.fixture
def fixed_provider() -> FixedSampleProvider:
    return FixedSampleProvider({"temperature": TEMPERATURE_SERIES, "windspeed": WIND_SERIES})


@pytest.fixture
def export_manager() -> ExportManager:
    return ExportManager(InMemoryArtifactStore())


@pytest.fixture
def client(fixed_provider: FixedSampleProvider, export_manager: ExportManager):
    app.dependency_overrides[get_sample_provider] = lambda: fixed_provider
    app.dependency_overrides[get_export_manager] = lambda: export_manager
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
