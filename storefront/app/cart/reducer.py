# storefront/app/cart/reducer.py
"""
Pure cart transitions.

`reduce(snapshot, action)` routes each tagged action to one transition that
returns a new CartSnapshot. Nothing here awaits, logs or touches the network,
so every transition can be exercised directly in tests.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Type

from storefront.app.cart.actions import (
    AddItem,
    CartAction,
    Clear,
    Hydrate,
    RemoveItem,
    SetQuantity,
    SetSyncState,
)
from storefront.app.cart.models import CartSnapshot, CartValidationError, SyncState


def validate_quantity(quantity: Any, *, allow_zero: bool = False) -> int:
    """Return `quantity` if it is an int > 0 (or >= 0 with allow_zero), else raise."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise CartValidationError(f"quantity must be an integer, got {quantity!r}")
    floor = 0 if allow_zero else 1
    if quantity < floor:
        raise CartValidationError(f"quantity must be >= {floor}, got {quantity}")
    return quantity


def _hydrate(snapshot: CartSnapshot, action: Hydrate) -> CartSnapshot:
    lines = tuple(line for line in action.lines if line.quantity > 0)
    return CartSnapshot(lines=lines, sync_state=SyncState.IDLE)


def _add_item(snapshot: CartSnapshot, action: AddItem) -> CartSnapshot:
    incoming = action.line
    if not incoming.product_id:
        raise CartValidationError("product id is required")
    validate_quantity(incoming.quantity)

    lines = list(snapshot.lines)
    for i, line in enumerate(lines):
        if line.product_id == incoming.product_id:
            lines[i] = replace(line, quantity=line.quantity + incoming.quantity)
            break
    else:
        lines.append(incoming)
    return replace(snapshot, lines=tuple(lines))


def _set_quantity(snapshot: CartSnapshot, action: SetQuantity) -> CartSnapshot:
    quantity = validate_quantity(action.quantity, allow_zero=True)
    if snapshot.find_line(action.line_id) is None:
        return snapshot
    lines = []
    for line in snapshot.lines:
        if line.line_id != action.line_id:
            lines.append(line)
        elif quantity > 0:
            lines.append(replace(line, quantity=quantity))
    return replace(snapshot, lines=tuple(lines))


def _remove_item(snapshot: CartSnapshot, action: RemoveItem) -> CartSnapshot:
    if snapshot.find_line(action.line_id) is None:
        return snapshot
    lines = tuple(line for line in snapshot.lines if line.line_id != action.line_id)
    return replace(snapshot, lines=lines)


def _clear(snapshot: CartSnapshot, action: Clear) -> CartSnapshot:
    return replace(snapshot, lines=())


def _set_sync_state(snapshot: CartSnapshot, action: SetSyncState) -> CartSnapshot:
    if snapshot.sync_state == action.state:
        return snapshot
    return replace(snapshot, sync_state=action.state)


_TRANSITIONS: Dict[Type[Any], Callable[[CartSnapshot, Any], CartSnapshot]] = {
    Hydrate: _hydrate,
    AddItem: _add_item,
    SetQuantity: _set_quantity,
    RemoveItem: _remove_item,
    Clear: _clear,
    SetSyncState: _set_sync_state,
}


def reduce(snapshot: CartSnapshot, action: CartAction) -> CartSnapshot:
    try:
        transition = _TRANSITIONS[type(action)]
    except KeyError:
        raise TypeError(f"unknown cart action: {type(action).__name__}") from None
    return transition(snapshot, action)
