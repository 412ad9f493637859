"""
Tests for application-wide behaviour: health, fallbacks and error handlers.
"""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from api.main import app, get_db_service


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_status"] == "healthy"
    assert data["books_count"] == 5
    assert data["users_count"] == 2
    assert "timestamp" in data
    assert "version" in data


def test_health_check_without_lifespan():
    """Without startup the service reports itself unhealthy."""
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "unhealthy"


def test_books_without_lifespan_returns_500():
    response = TestClient(app).get("/api/books/1")

    assert response.status_code == 500
    assert response.json()["error"] == "Database service not available"


def test_unmatched_route_returns_plain_text_404(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.text == "Sorry, page not found"
    assert response.headers["content-type"].startswith("text/plain")


def test_unsupported_method_returns_plain_text_404(client):
    response = client.patch("/api/books/1", json={"title": "Patched"})

    assert response.status_code == 404
    assert response.text == "Sorry, page not found"


def test_unhandled_error_returns_plain_text_500(failing_client):
    """Errors the routes do not handle fall through to the generic 500."""
    service = AsyncMock()
    service.add_book.side_effect = RuntimeError("storage exploded")
    app.dependency_overrides[get_db_service] = lambda: service

    response = failing_client.post("/api/books", json={"id": 20, "title": "T", "author": "A"})

    assert response.status_code == 500
    assert response.text == "Something went wrong on the server!"
    assert "storage exploded" not in response.text


def test_malformed_json_returns_400(client):
    response = client.post(
        "/api/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "bad request"


def test_malformed_json_on_book_route_uses_error_key(client):
    response = client.put(
        "/api/books/1",
        content=b"{not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Bad Request"


def test_non_object_register_body_returns_400(client):
    response = client.post("/api/register", json=["ron@hogwarts.edu", "weasley"])

    assert response.status_code == 400
    assert response.json()["message"] == "Bad Request"


def test_each_client_gets_fresh_data():
    """Changes made in one app lifetime do not leak into the next."""
    with TestClient(app) as first:
        assert first.delete("/api/books/1").status_code == 204

    with TestClient(app) as second:
        assert second.get("/api/books/1").status_code == 200
