from fastapi.testclient import TestClient

from storefront.main import app
from storefront.models import Category


def test_health_and_ping(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api/health").status_code == 200
    assert client.get("/ping").json() == {"ping": "pong"}


def test_validation_errors_are_400(client):
    response = client.get("/api/products?page=0")

    assert response.status_code == 400


def test_unhandled_errors_return_generic_500(db, monkeypatch):
    db.add(Category(name="Tanks"))
    db.commit()

    def explode(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr("storefront.routes.categories.serialize_category", explode)

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/api/categories")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
