from __future__ import annotations

import random
from decimal import Decimal

import pytest

from storefront.app.cart.actions import (
    AddItem,
    Clear,
    Hydrate,
    RemoveItem,
    SetQuantity,
    SetSyncState,
)
from storefront.app.cart.models import (
    EMPTY_CART,
    CartLine,
    CartSnapshot,
    CartValidationError,
    Product,
    SyncState,
)
from storefront.app.cart.reducer import reduce

TEE = Product.from_dict({"id": "p1", "name": "Tee", "price": 19.99})
CAP = Product.from_dict({"id": "p2", "name": "Cap", "price": "12.00"})


def _add(state: CartSnapshot, product: Product, qty: int = 1) -> CartSnapshot:
    return reduce(state, AddItem(CartLine.from_product(product, qty)))


def _expected_total(state: CartSnapshot) -> Decimal:
    return sum((l.unit_price * l.quantity for l in state.lines), Decimal("0"))


def test_adding_same_product_twice_merges_into_one_line():
    state = _add(EMPTY_CART, TEE)
    state = _add(state, TEE)
    assert len(state.lines) == 1
    assert state.lines[0].quantity == 2
    assert state.total == Decimal("39.98")


def test_add_keeps_insertion_order_and_line_ids():
    state = _add(EMPTY_CART, TEE)
    first_id = state.lines[0].line_id
    state = _add(state, CAP, 3)
    state = _add(state, TEE)
    assert [l.product_id for l in state.lines] == ["p1", "p2"]
    assert state.lines[0].line_id == first_id
    assert state.total == Decimal("19.99") * 2 + Decimal("36.00")


def test_set_quantity_zero_removes_line():
    line = CartLine("l1", "p1", "Thing", Decimal("10.00"), 3)
    state = reduce(EMPTY_CART, Hydrate((line,)))
    state = reduce(state, SetQuantity("l1", 0))
    assert state.lines == ()
    assert state.total == Decimal("0")
    assert f"{state.total:.2f}" == "0.00"


def test_set_quantity_replaces_in_place():
    state = _add(EMPTY_CART, TEE)
    state = _add(state, CAP)
    line_id = state.lines[0].line_id
    state = reduce(state, SetQuantity(line_id, 5))
    assert [l.quantity for l in state.lines] == [5, 1]
    assert state.total == Decimal("19.99") * 5 + Decimal("12.00")


def test_unknown_line_id_is_a_no_op():
    state = _add(EMPTY_CART, TEE)
    assert reduce(state, SetQuantity("missing", 4)) is state
    assert reduce(state, RemoveItem("missing")) is state


def test_remove_item():
    state = _add(EMPTY_CART, TEE)
    state = _add(state, CAP)
    state = reduce(state, RemoveItem(state.lines[0].line_id))
    assert [l.product_id for l in state.lines] == ["p2"]
    assert state.total == Decimal("12.00")


def test_clear_then_hydrate_empty_is_empty():
    state = _add(EMPTY_CART, TEE, 4)
    state = reduce(state, Clear())
    state = reduce(state, Hydrate(()))
    assert state.lines == ()
    assert state.total == 0
    assert state.sync_state is SyncState.IDLE


def test_hydrate_discards_local_only_lines():
    state = _add(EMPTY_CART, CAP)  # local-only, never synced
    server = CartLine("srv-1", "p1", "Tee", Decimal("19.99"), 2)
    state = reduce(state, SetSyncState(SyncState.ERROR))
    state = reduce(state, Hydrate((server,)))
    assert [l.product_id for l in state.lines] == ["p1"]
    assert state.lines[0].line_id == "srv-1"
    assert state.sync_state is SyncState.IDLE
    assert state.total == Decimal("39.98")


def test_hydrate_drops_non_positive_lines():
    lines = (
        CartLine("a", "p1", "Tee", Decimal("1"), 0),
        CartLine("b", "p2", "Cap", Decimal("2"), 2),
    )
    state = reduce(EMPTY_CART, Hydrate(lines))
    assert [l.line_id for l in state.lines] == ["b"]


@pytest.mark.parametrize("qty", [0, -1, 1.5, "2", True])
def test_add_rejects_bad_quantity(qty):
    with pytest.raises(CartValidationError):
        reduce(EMPTY_CART, AddItem(CartLine("x", "p1", "Tee", Decimal("1"), qty)))


def test_set_quantity_rejects_negative():
    state = _add(EMPTY_CART, TEE)
    with pytest.raises(CartValidationError):
        reduce(state, SetQuantity(state.lines[0].line_id, -2))


def test_product_requires_id_and_valid_price():
    with pytest.raises(CartValidationError):
        Product.from_dict({"name": "nameless", "price": 1})
    with pytest.raises(CartValidationError):
        Product.from_dict({"id": "p9", "price": -1})
    with pytest.raises(CartValidationError):
        Product.from_dict({"id": "p9", "price": "abc"})


def test_unknown_action_type_raises():
    with pytest.raises(TypeError):
        reduce(EMPTY_CART, object())  # type: ignore[arg-type]


def test_total_matches_lines_after_every_mutation():
    rng = random.Random(1234)
    products = [
        Product.from_dict({"id": f"p{i}", "name": f"P{i}", "price": f"{rng.randint(0, 5000) / 100:.2f}"})
        for i in range(6)
    ]
    state = EMPTY_CART
    for _ in range(300):
        roll = rng.random()
        if roll < 0.5 or not state.lines:
            state = _add(state, rng.choice(products), rng.randint(1, 4))
        elif roll < 0.8:
            line = rng.choice(state.lines)
            state = reduce(state, SetQuantity(line.line_id, rng.randint(0, 6)))
        elif roll < 0.95:
            state = reduce(state, RemoveItem(rng.choice(state.lines).line_id))
        else:
            state = reduce(state, Clear())

        assert state.total == _expected_total(state)
        assert all(l.quantity > 0 for l in state.lines)
        assert len({l.product_id for l in state.lines}) == len(state.lines)


def test_snapshot_to_dict():
    state = _add(EMPTY_CART, TEE, 2)
    doc = state.to_dict()
    assert doc["total"] == "39.98"
    assert doc["sync_state"] == "idle"
    assert doc["items"][0]["product_id"] == "p1"
    assert doc["items"][0]["quantity"] == 2
