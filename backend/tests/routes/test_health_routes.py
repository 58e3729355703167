"""Health, metrics and request id plumbing."""


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["timestamp"].endswith("Z")


def test_metrics_exposition(client):
    client.get("/api/v1/health")
    r = client.get("/api/v1/metrics")
    assert r.status_code == 200
    assert "text/plain" in r.headers["content-type"]
    assert "lessonbook_http_requests_total" in r.text


def test_request_id_is_echoed_and_reported_in_errors(client):
    r = client.get("/api/v1/bookings", headers={"X-Request-ID": "req-123"})
    assert r.status_code == 401
    assert r.headers["X-Request-ID"] == "req-123"
    assert r.json()["request_id"] == "req-123"


def test_request_id_is_generated(client):
    r = client.get("/api/v1/health")
    assert len(r.headers["X-Request-ID"]) == 32


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
