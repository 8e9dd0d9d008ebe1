"""Tests for the HTTP surface."""

from __future__ import annotations

import csv
import io

from weather_odds.artifacts import ExportManager
from weather_odds.main import app, get_sample_provider
from weather_odds.sample_providers import SyntheticSampleProvider

LA = {"lat": 34.05, "lon": -118.24}


def query_body(**overrides) -> dict:
    body = {
        "location": LA,
        "dayOfYear": 1,
        "variables": ["temperature"],
        "thresholds": [{"variable": "temperature", "value": 90, "unit": "F"}],
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_root(self, client) -> None:
        r = client.get("/")
        assert r.status_code == 200
        assert "running" in r.text


class TestQueryEndpoint:
    def test_success_shape(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body())
        assert r.status_code == 200
        data = r.json()

        assert data["status"] == "Success"
        assert list(data["queryResults"]) == ["temperature"]
        result = data["queryResults"]["temperature"]
        assert result["unit"] == "K"
        assert result["mean"] == 289.0
        # 90 F = 305.37 K, above every fixed sample
        assert result["exceedanceProbabilityPercent"] == 0.0
        assert result["probabilityExceedingThreshold"] == "0%"
        assert result["sourceLabel"] == "GES_DISC_Dataset_XYZ"
        assert result["sourceCode"] == "AirTemp_Mean"
        assert data["downloadLink"].startswith("/api/weather/download/weather_query_anonymous_")
        assert data["visualizations"] == [result["visualSuggestion"]]

    def test_synthetic_end_to_end(self, client) -> None:
        app.dependency_overrides[get_sample_provider] = lambda: SyntheticSampleProvider()
        r = client.post("/api/weather/query", json=query_body())
        assert r.status_code == 200
        result = r.json()["queryResults"]["temperature"]
        assert 0 <= result["exceedanceProbabilityPercent"] <= 100
        assert 273.15 <= result["mean"] <= 323.15

        download = client.get(r.json()["downloadLink"])
        records = list(csv.DictReader(io.StringIO(download.text)))
        assert len(records) == 10
        assert {rec["variable"] for rec in records} == {"temperature"}

    def test_no_threshold_renders_not_applicable(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(thresholds=[]))
        result = r.json()["queryResults"]["temperature"]
        assert result["exceedanceProbabilityPercent"] is None
        assert result["probabilityExceedingThreshold"] == "N/A"

    def test_requester_namespaces_download(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(), headers={"X-User-Id": "abc123"})
        assert "/weather_query_abc123_" in r.json()["downloadLink"]

    def test_unknown_variable_dropped(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(variables=["temperature", "bogus_key"]))
        assert r.status_code == 200
        assert list(r.json()["queryResults"]) == ["temperature"]

    def test_only_unknown_variables(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(variables=["bogus_key"], thresholds=[]))
        assert r.status_code == 200
        assert r.json()["queryResults"] == {}
        assert r.json()["visualizations"] == []

    def test_empty_variables(self, client, export_manager: ExportManager) -> None:
        r = client.post("/api/weather/query", json=query_body(variables=[]))
        assert r.status_code == 400
        assert r.json()["kind"] == "EmptyVariableSet"
        assert export_manager.store._items == {}

    def test_missing_location(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(location={"name": "Los Angeles"}))
        assert r.status_code == 400
        assert r.json()["kind"] == "InvalidLocation"

    def test_coordinates_and_name_together(self, client) -> None:
        location = dict(LA, name="Los Angeles")
        r = client.post("/api/weather/query", json=query_body(location=location))
        assert r.status_code == 400
        assert r.json()["kind"] == "InvalidLocation"

    def test_bad_day(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(dayOfYear=400))
        assert r.status_code == 400
        assert r.json()["kind"] == "InvalidDayOfYear"

    def test_malformed_body(self, client) -> None:
        r = client.post("/api/weather/query", json=query_body(location={"lat": "north", "lon": 1}))
        assert r.status_code == 400
        assert r.json()["kind"] == "ValidationError"

    def test_processing_error_is_generic(self, client, export_manager: ExportManager) -> None:
        body = query_body(
            variables=["windspeed"],
            thresholds=[{"variable": "windspeed", "value": 10, "unit": "F"}],
        )
        r = client.post("/api/weather/query", json=body)
        assert r.status_code == 500
        assert r.json() == {"kind": "ProcessingError", "msg": "Server error during data processing."}
        assert export_manager.store._items == {}


class TestDownloadEndpoint:
    def test_download_once(self, client) -> None:
        link = client.post("/api/weather/query", json=query_body()).json()["downloadLink"]
        filename = link.rsplit("/", 1)[1]

        first = client.get(link)
        assert first.status_code == 200
        assert first.headers["content-type"].startswith("text/csv")
        assert filename in first.headers["content-disposition"]
        records = list(csv.DictReader(io.StringIO(first.text)))
        assert len(records) == 10
        assert [int(rec["year_offset"]) for rec in records] == list(range(-1, -11, -1))
        assert records[0]["value"] == "280.0000"

        second = client.get(link)
        assert second.status_code == 404
        assert second.json()["kind"] == "ArtifactNotFound"

    def test_unknown_file(self, client) -> None:
        r = client.get("/api/weather/download/weather_query_nobody_0_deadbeef.csv")
        assert r.status_code == 404
