from __future__ import annotations

from fastapi.testclient import TestClient
from storefront.main import app

client = TestClient(app)

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def test_cart_requires_identity(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert client.get("/api/cart").status_code == 401
    r = client.post("/api/cart", json={"product_id": "p-tee"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Unauthorized"
    assert client.post("/api/cart/clear").status_code == 401


def test_new_user_gets_empty_cart(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    r = client.get("/api/cart", headers=ALICE)
    assert r.status_code == 200
    assert r.json() == {"items": []}
    # lazily created on first read
    assert (tmp_path / "workspace" / ".storefront" / "carts.json").exists()


def test_add_increments_existing_line(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    r = client.post("/api/cart", json={"product_id": "p-tee"}, headers=ALICE)
    assert r.status_code == 200
    line_id = r.json()["item"]["id"]

    r = client.post("/api/cart", json={"product_id": "p-tee", "quantity": 2}, headers=ALICE)
    assert r.status_code == 200
    assert r.json()["item"]["id"] == line_id

    items = client.get("/api/cart", headers=ALICE).json()["items"]
    assert len(items) == 1
    item = items[0]
    assert item["product_id"] == "p-tee"
    assert item["quantity"] == 3
    assert item["name"] == "Classic Tee"
    assert item["price"] == 19.99
    assert item["image"] == "/assets/tee.png"


def test_add_validation(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert client.post("/api/cart", json={}, headers=ALICE).status_code == 400
    assert client.post("/api/cart", json={"product_id": "p-tee", "quantity": 0}, headers=ALICE).status_code == 400
    assert client.post("/api/cart", json={"product_id": "p-tee", "quantity": "1"}, headers=ALICE).status_code == 400
    r = client.post("/api/cart", json={"product_id": "nope"}, headers=ALICE)
    assert r.status_code == 404
    assert r.json()["detail"] == "Product not found"


def test_put_replaces_and_zero_deletes(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    client.post("/api/cart", json={"product_id": "p-tee"}, headers=ALICE)
    client.post("/api/cart", json={"product_id": "p-cap"}, headers=ALICE)

    r = client.put("/api/cart", json={"product_id": "p-tee", "quantity": 5}, headers=ALICE)
    assert r.status_code == 200
    items = {it["product_id"]: it["quantity"] for it in client.get("/api/cart", headers=ALICE).json()["items"]}
    assert items == {"p-tee": 5, "p-cap": 1}

    r = client.put("/api/cart", json={"product_id": "p-tee", "quantity": 0}, headers=ALICE)
    assert r.status_code == 200
    items = client.get("/api/cart", headers=ALICE).json()["items"]
    assert [it["product_id"] for it in items] == ["p-cap"]


def test_put_validation_and_missing_cart(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert client.put("/api/cart", json={"product_id": "p-tee", "quantity": -1}, headers=ALICE).status_code == 400
    assert client.put("/api/cart", json={"quantity": 1}, headers=ALICE).status_code == 400
    # bob never touched his cart
    r = client.put("/api/cart", json={"product_id": "p-tee", "quantity": 1}, headers=BOB)
    assert r.status_code == 404
    assert r.json()["detail"] == "Cart not found"


def test_delete_line(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    client.post("/api/cart", json={"product_id": "p-mug", "quantity": 2}, headers=ALICE)
    r = client.request("DELETE", "/api/cart", json={"product_id": "p-mug"}, headers=ALICE)
    assert r.status_code == 200
    assert client.get("/api/cart", headers=ALICE).json()["items"] == []

    # deleting an absent product is idempotent
    r = client.request("DELETE", "/api/cart", json={"product_id": "p-mug"}, headers=ALICE)
    assert r.status_code == 200
    assert client.request("DELETE", "/api/cart", json={}, headers=ALICE).status_code == 400
    assert client.request("DELETE", "/api/cart", json={"product_id": "p-mug"}, headers=BOB).status_code == 404


def test_clear_is_scoped_to_user(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    client.post("/api/cart", json={"product_id": "p-tee"}, headers=ALICE)
    client.post("/api/cart", json={"product_id": "p-hoodie"}, headers=ALICE)
    client.post("/api/cart", json={"product_id": "p-cap"}, headers=BOB)

    r = client.post("/api/cart/clear", headers=ALICE)
    assert r.status_code == 200
    assert client.get("/api/cart", headers=ALICE).json()["items"] == []
    assert len(client.get("/api/cart", headers=BOB).json()["items"]) == 1

    # clearing a cart that was never created is fine
    assert client.post("/api/cart/clear", headers={"X-User-Id": "carol"}).status_code == 200


def test_cart_requests_are_counted(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    client.get("/api/cart", headers=ALICE)
    r = client.get("/api/metrics")
    assert r.status_code == 200
    assert 'storefront_cart_requests_total{method="GET",status="200"}' in r.text


def test_corrupt_cart_file_is_moved_aside(tmp_path, monkeypatch, caplog):
    monkeypatch.chdir(tmp_path)
    store_dir = tmp_path / "workspace" / ".storefront"
    store_dir.mkdir(parents=True)
    (store_dir / "carts.json").write_text("{not json", encoding="utf-8")

    with caplog.at_level("WARNING", logger="storefront.app.services.json_store"):
        r = client.get("/api/cart", headers=ALICE)
    assert r.status_code == 200
    assert r.json() == {"items": []}
    assert any("unreadable store file" in rec.getMessage() for rec in caplog.records)

    backups = list(store_dir.glob("carts.json.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "{not json"
