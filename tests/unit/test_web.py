"""Tests for the HTTP API."""

from __future__ import annotations

import csv
import io
from pathlib import Path

import pytest
from conftest import FakeSource
from fastapi.testclient import TestClient

from netwatch.config import NetWatchConfig
from netwatch.errors import SourceError
from netwatch.monitor.service import NetWatchMonitor
from netwatch.web.app import create_app


def _client(config: NetWatchConfig, source: FakeSource) -> TestClient:
    monitor = NetWatchMonitor(source, config)
    app = create_app(config, monitor=monitor, start_polling=False)
    return TestClient(app)


@pytest.fixture
def client(config: NetWatchConfig, sample_raws):
    with _client(config, FakeSource([sample_raws])) as test_client:
        yield test_client


@pytest.fixture
def polled(client: TestClient) -> TestClient:
    response = client.post("/api/refresh")
    assert response.status_code == 200
    return client


def test_before_first_poll_is_unavailable(client: TestClient):
    for path in ("/api/connections", "/api/processes", "/api/ports", "/api/stats", "/api/export"):
        response = client.get(path)
        assert response.status_code == 503, path
        assert "No connection snapshot" in response.json()["detail"]

    assert client.get("/api/changes").json() == []


def test_status_before_and_after_poll(client: TestClient):
    status = client.get("/api/status").json()
    assert status == {
        "state": "idle",
        "running": False,
        "sequence": None,
        "failures": 0,
        "lastError": None,
    }

    client.post("/api/refresh")
    assert client.get("/api/status").json()["sequence"] == 1


def test_refresh_result(client: TestClient):
    body = client.post("/api/refresh").json()
    assert body == {"outcome": "published", "state": "idle", "sequence": 1, "error": None}


def test_refresh_failure(config: NetWatchConfig):
    with _client(config, FakeSource([SourceError("no access")])) as client:
        body = client.post("/api/refresh").json()
        assert body["outcome"] == "failed"
        assert body["state"] == "backoff"
        assert body["sequence"] is None
        assert body["error"] == "no access"

        status = client.get("/api/status").json()
        assert status["failures"] == 1
        assert status["lastError"] == "no access"


def test_connections(polled: TestClient):
    conns = polled.get("/api/connections").json()
    assert len(conns) == 4
    suspicious = next(c for c in conns if c["processName"] == "suspicious.exe")
    assert suspicious["risk"] == "high"
    assert suspicious["riskReasons"] == ["Known malware port 4444"]
    assert suspicious["remotePort"] == 4444


def test_connection_filters(polled: TestClient):
    assert len(polled.get("/api/connections", params={"risk": "high"}).json()) == 1
    assert len(polled.get("/api/connections", params={"search": "chrome"}).json()) == 2
    assert len(polled.get("/api/connections", params={"hideLocalhost": "true"}).json()) == 3
    assert len(polled.get("/api/connections", params={"onlyEstablished": "true"}).json()) == 3
    assert polled.get("/api/connections", params={"risk": "extreme"}).status_code == 422


def test_changes(polled: TestClient):
    changes = polled.get("/api/changes").json()
    assert len(changes) == 4
    assert {c["type"] for c in changes} == {"new"}
    assert len(polled.get("/api/changes", params={"limit": 2}).json()) == 2
    assert polled.get("/api/changes", params={"limit": -1}).status_code == 422


def test_summaries(polled: TestClient):
    processes = polled.get("/api/processes").json()
    assert processes[0] == {"pid": 12456, "name": "chrome.exe", "count": 2, "maxRisk": "low"}

    ports = polled.get("/api/ports").json()
    assert [p["port"] for p in ports] == [443, 4444]

    stats = polled.get("/api/stats").json()
    assert stats["activeConnections"] == 4
    assert stats["highRisk"] == 1
    assert stats["listeningPorts"] == 1


def test_export_view(polled: TestClient):
    response = polled.get("/api/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["sequence"] == 1

    response = polled.get("/api/export", params={"format": "csv"})
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 4

    assert polled.get("/api/export", params={"format": "xml"}).status_code == 422


def test_export_to_file(polled: TestClient, config: NetWatchConfig):
    body = polled.post("/api/export", json={"format": "csv"}).json()
    path = Path(body["filePath"])
    assert body["format"] == "csv"
    assert path.parent == config.export_dir
    assert path.exists()


def test_lifespan_starts_and_stops_polling(config: NetWatchConfig, sample_raws):
    monitor = NetWatchMonitor(FakeSource([sample_raws]), config)
    app = create_app(config, monitor=monitor)

    with TestClient(app) as client:
        assert monitor.is_running
        assert client.get("/api/status").json()["running"] is True

    assert not monitor.is_running


def test_lifespan_runs_twice(config: NetWatchConfig, sample_raws):
    monitor = NetWatchMonitor(FakeSource([sample_raws]), config)
    app = create_app(config, monitor=monitor)

    with TestClient(app):
        pass

    with TestClient(app) as client:
        assert monitor.is_running
        assert client.post("/api/refresh").json()["outcome"] in ("published", "discarded")
