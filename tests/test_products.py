"""
tests/test_products.py -- Integration tests for /api/products.

All product routes sit behind the session cookie. Each test signs in as the
seeded admin through the sign_in fixture.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def client(api_client, sign_in):
    sign_in(api_client.client, api_client.token)
    return api_client.client


def _create(client, name="Widget", **fields):
    resp = client.post("/api/products", json={"name": name, **fields})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["product"]


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/products"),
        ("get", "/api/products/stats"),
        ("post", "/api/products"),
        ("get", "/api/products/1"),
        ("put", "/api/products/1"),
        ("delete", "/api/products/1"),
    ],
)
def test_requires_authentication(api_client, method, path):
    resp = getattr(api_client.client, method)(path)
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authentication required"}


def test_create_product(client, api_client):
    resp = client.post("/api/products", json={"name": "  Gadget  ", "description": "Shiny"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Product created"
    product = body["data"]["product"]
    assert product["name"] == "Gadget"
    assert product["status"] == "Draft"
    assert product["created_by"] == api_client.admin.email
    assert product["is_deleted"] is False


@pytest.mark.parametrize(
    "payload",
    [{}, {"name": ""}, {"name": "   "}, {"name": "Bad", "status": "Live"}, {"name": "x" * 201}],
)
def test_create_rejects_invalid_body(client, payload):
    resp = client.post("/api/products", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid request body"}


def test_get_product(client):
    created = _create(client, "Lamp", status="Published")
    resp = client.get(f"/api/products/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["product"] == created


def test_get_missing_product(client):
    resp = client.get("/api/products/999999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Product not found"}


def test_list_is_newest_first(client):
    first = _create(client, "First")
    second = _create(client, "Second")
    ids = [p["id"] for p in client.get("/api/products").json()["data"]["products"]]
    assert ids.index(second["id"]) < ids.index(first["id"])


def test_partial_update(client, api_client):
    created = _create(client, "Chair", description="Wooden")
    resp = client.put(f"/api/products/{created['id']}", json={"status": "Archived"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Product updated"
    product = resp.json()["data"]["product"]
    assert product["status"] == "Archived"
    assert product["name"] == "Chair"
    assert product["description"] == "Wooden"
    assert product["updated_by"] == api_client.admin.email


def test_update_without_fields(client):
    created = _create(client, "Table")
    resp = client.put(f"/api/products/{created['id']}", json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "No fields to update"


def test_update_missing_product(client):
    resp = client.put("/api/products/999999", json={"name": "Ghost"})
    assert resp.status_code == 404


def test_soft_delete(client):
    created = _create(client, "Doomed")
    resp = client.delete(f"/api/products/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Product deleted"}

    assert client.get(f"/api/products/{created['id']}").status_code == 404
    assert client.delete(f"/api/products/{created['id']}").status_code == 404
    assert client.put(f"/api/products/{created['id']}", json={"name": "Back"}).status_code == 404

    active = {p["id"] for p in client.get("/api/products").json()["data"]["products"]}
    everything = client.get("/api/products", params={"include_deleted": "true"}).json()["data"]["products"]
    assert created["id"] not in active
    assert any(p["id"] == created["id"] and p["is_deleted"] for p in everything)


def test_stats_count_active_products_per_status(client):
    before = client.get("/api/products/stats").json()["data"]["stats"]
    _create(client, "Draft one")
    _create(client, "Published one", status="Published")
    archived = _create(client, "Archived one", status="Archived")
    deleted = _create(client, "Deleted one", status="Published")
    client.delete(f"/api/products/{deleted['id']}")

    after = client.get("/api/products/stats").json()["data"]["stats"]
    assert after["total"] - before["total"] == 3
    assert after["draft"] - before["draft"] == 1
    assert after["published"] - before["published"] == 1
    assert after["archived"] - before["archived"] == 1
    assert archived["status"] == "Archived"


def test_stats_match_listing(client):
    stats = client.get("/api/products/stats").json()["data"]["stats"]
    products = client.get("/api/products").json()["data"]["products"]
    assert stats["total"] == len(products)
    assert stats["total"] == stats["draft"] + stats["published"] + stats["archived"]
