"""
Test application-level behaviour: health check and error bodies.
"""

from fastapi.testclient import TestClient


def test_health_check(client: TestClient):
    """Health check is public and reports ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "timestamp" in data


def test_unknown_route_uses_error_body(client: TestClient):
    """Unknown routes answer 404 with an `error` body."""
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_protected_routes_require_token(client: TestClient):
    """Every /api route except register/login sits behind the bearer gate."""
    for method, path in [
        ("get", "/api/medical-cards"),
        ("get", "/api/templates"),
        ("get", "/api/entries"),
        ("get", "/api/categories"),
        ("get", "/api/links"),
        ("get", "/api/public-cards"),
        ("get", "/api/auth/me"),
        ("post", "/api/ai/chat"),
    ]:
        response = getattr(client, method)(path)
        assert response.status_code == 401, path
        assert response.json() == {"error": "Not authenticated"}


def test_validation_error_is_400_with_field(client: TestClient, auth_headers):
    """Body validation failures answer 400 with a field-level message."""
    response = client.post("/api/medical-cards", json={"content": "no title"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("title")
