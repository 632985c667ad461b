"""Tests for the health and readiness endpoints."""


def test_health_reports_connected_store(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["lifecycle"] == "ready"
    assert data["pool"]["max_size"] == 5
    assert data["pool"]["in_use"] == 0
    assert "timestamp" in data


def test_ready(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"
