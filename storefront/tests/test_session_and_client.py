from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from storefront.app.core.session import SessionSource
from storefront.app.integrations.cart_store.client import (
    IDENTITY_HEADER,
    CartStoreClient,
    CartStoreError,
)


def test_session_notifies_only_on_change():
    session = SessionSource()
    events = []
    unsubscribe = session.subscribe(lambda prev, cur: events.append((prev, cur)))

    session.set_identity("alice")
    session.set_identity("alice")
    session.set_identity("bob")
    session.set_identity("")  # empty means logged out
    unsubscribe()
    session.set_identity("carol")

    assert events == [(None, "alice"), ("alice", "bob"), ("bob", None)]
    assert session.identity == "carol"
    assert session.is_authenticated


def test_announce_is_silent_when_anonymous():
    session = SessionSource()
    events = []
    session.subscribe(lambda prev, cur: events.append((prev, cur)))
    session.announce()
    assert events == []


def _client(handler) -> CartStoreClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    return CartStoreClient(client=http)


@pytest.mark.asyncio
async def test_client_sends_identity_and_parses_items():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.headers.get(IDENTITY_HEADER)))
        return httpx.Response(200, json={"items": [
            {"id": "l1", "product_id": "p1", "name": "Tee", "price": 19.99, "image": None, "quantity": 2},
        ]})

    client = _client(handler)
    lines = await client.load_cart("alice")
    assert seen == [("GET", "/api/cart", "alice")]
    assert lines[0].line_id == "l1"
    assert lines[0].unit_price == Decimal("19.99")
    assert lines[0].quantity == 2


@pytest.mark.asyncio
async def test_client_request_bodies():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={"message": "ok"})

    client = _client(handler)
    await client.upsert_line("alice", "p1", 2)
    await client.replace_quantity("alice", "p1", 5)
    await client.delete_line("alice", "p1")
    await client.clear_cart("alice")

    assert [(m, p) for m, p, _ in bodies] == [
        ("POST", "/api/cart"),
        ("PUT", "/api/cart"),
        ("DELETE", "/api/cart"),
        ("POST", "/api/cart/clear"),
    ]
    assert b'"quantity":5' in bodies[1][2].replace(b" ", b"")
    assert bodies[3][2] == b""


@pytest.mark.asyncio
async def test_client_maps_failures_to_cart_store_error():
    client = _client(lambda request: httpx.Response(503, json={"detail": "down"}))
    with pytest.raises(CartStoreError) as exc:
        await client.upsert_line("alice", "p1", 1)
    assert exc.value.status_code == 503

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CartStoreError) as exc:
        await _client(refuse).clear_cart("alice")
    assert exc.value.status_code is None

    bad = _client(lambda request: httpx.Response(200, json={"items": [{"id": "x"}]}))
    with pytest.raises(CartStoreError):
        await bad.load_cart("alice")


@pytest.mark.asyncio
async def test_client_rejects_non_object_cart_documents():
    for body in ([], "cart", {"items": {"id": "x"}}):
        client = _client(lambda request, body=body: httpx.Response(200, json=body))
        with pytest.raises(CartStoreError):
            await client.load_cart("alice")


@pytest.mark.asyncio
async def test_client_create_order_returns_order_id():
    client = _client(lambda request: httpx.Response(201, json={"message": "ok", "order_id": "order_ab12"}))
    assert await client.create_order("alice") == "order_ab12"

    empty = _client(lambda request: httpx.Response(201, json={"message": "ok"}))
    with pytest.raises(CartStoreError):
        await empty.create_order("alice")
