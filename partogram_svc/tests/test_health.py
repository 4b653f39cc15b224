"""
Tests for health, readiness, and metrics endpoints.

These tests verify the observability endpoints work correctly:
- /health: Liveness probe
- /ready: Readiness probe with the database check
- /metrics: Prometheus-format metrics, including ward counters
- /: Root endpoint with API info
"""
import pytest

from core.middleware import MetricsCollector, RequestMetrics, WARD_EVENTS
from core.datetime_utils import utc_now


# =============================================================================
# ROOT ENDPOINT TESTS
# =============================================================================

def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Partogram Service API"
    assert data["version"] == "1.0.0"
    assert "health" in data
    assert "ready" in data
    assert "metrics" in data


# =============================================================================
# HEALTH ENDPOINT TESTS (LIVENESS)
# =============================================================================

def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["timestamp"].endswith("Z")


# =============================================================================
# READINESS ENDPOINT TESTS
# =============================================================================

def test_ready_endpoint(client):
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert [d["name"] for d in data["dependencies"]] == ["database"]
    assert data["dependencies"][0]["status"] == "ok"


def test_ready_endpoint_database_unavailable(client, monkeypatch):
    from core import dependencies as deps

    class BrokenDatabase:
        def get_connection(self):
            raise OSError("disk gone")

    monkeypatch.setattr(deps, "_database_instance", BrokenDatabase())

    response = client.get("/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["dependencies"][0]["status"] == "unavailable"


# =============================================================================
# METRICS ENDPOINT TESTS
# =============================================================================

def test_metrics_endpoint(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    content = response.text
    assert "http_requests_total" in content
    assert "http_request_duration_ms" in content
    assert 'ward_events_total{event="measurements_recorded"}' in content


def test_metrics_json_endpoint(client):
    response = client.get("/metrics/json")
    assert response.status_code == 200
    data = response.json()
    for name in WARD_EVENTS:
        assert f"ward_{name}_total" in data
    assert "http_request_duration_ms_p95" in data


def test_metrics_json_counts_measurements(client):
    before = client.get("/metrics/json").json()["ward_measurements_recorded_total"]
    patient_id = client.post("/api/v1/patients", json={"full_name": "Maria Ivanova"}).json()["id"]
    client.post(f"/api/v1/patients/{patient_id}/measurements", json={"cervical_dilation": 4})

    after = client.get("/metrics/json").json()["ward_measurements_recorded_total"]

    assert after == before + 1


# =============================================================================
# METRICS COLLECTOR UNIT TESTS
# =============================================================================

def test_collector_status_buckets_and_percentiles():
    collector = MetricsCollector()
    for i, status_code in enumerate([200, 201, 404, 500]):
        collector.record_request(RequestMetrics(
            timestamp=utc_now(),
            method="GET",
            path="/api/v1/timers",
            status_code=status_code,
            duration_ms=float(i + 1),
            request_id=f"req{i}",
        ))

    summary = collector.get_summary()
    assert summary["http_requests_total"] == 4
    assert summary["http_requests_2xx_total"] == 2
    assert summary["http_requests_4xx_total"] == 1
    assert summary["http_requests_5xx_total"] == 1
    assert summary["http_request_duration_ms_p99"] == 4.0


def test_collector_rejects_unknown_event():
    collector = MetricsCollector()
    with pytest.raises(KeyError):
        collector.record_event("babies_delivered")


def test_request_id_header(test_app):
    from fastapi.testclient import TestClient
    from core.middleware import LoggingMiddleware

    test_app.add_middleware(LoggingMiddleware)
    with TestClient(test_app) as client:
        response = client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 8
