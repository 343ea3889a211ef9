# storefront/app/services/cart_store.py
"""
Server-of-record for carts: one JSON document keyed by user id.

carts.json shape:
    { "<user_id>": {"id": "<cart_id>", "updated_at": <ts>,
                    "items": [{"id": "<line_id>", "product_id": "...", "quantity": n}]} }

Lines are unique per product id and never stored with quantity <= 0.
"""
from __future__ import annotations

import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from storefront.app.services.json_store import load_json, save_json, store_file

# read-modify-write guard (sync routes run in the threadpool)
_LOCK = threading.RLock()


def _carts_file() -> Path:
    return store_file("carts.json")

def _load_carts() -> Dict[str, Dict[str, Any]]:
    carts = load_json(_carts_file(), default={})
    return carts if isinstance(carts, dict) else {}

def _save_carts(carts: Dict[str, Dict[str, Any]]) -> None:
    save_json(_carts_file(), carts)

def _new_cart() -> Dict[str, Any]:
    return {"id": uuid.uuid4().hex, "items": [], "updated_at": time.time()}

def _touch(cart: Dict[str, Any]) -> None:
    cart["updated_at"] = time.time()

# =========================================================
# carts
# =========================================================

def get_cart(user_id: str) -> Optional[Dict[str, Any]]:
    with _LOCK:
        return _load_carts().get(user_id)

def get_or_create_cart(user_id: str) -> Dict[str, Any]:
    with _LOCK:
        carts = _load_carts()
        cart = carts.get(user_id)
        if cart is None:
            cart = carts[user_id] = _new_cart()
            _save_carts(carts)
        return cart

def list_items(user_id: str) -> List[Dict[str, Any]]:
    cart = get_or_create_cart(user_id)
    return list(cart.get("items") or [])

def add_item(user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
    """Increment the product's line by `quantity` or create it. Returns the line."""
    with _LOCK:
        carts = _load_carts()
        cart = carts.setdefault(user_id, _new_cart())
        for item in cart["items"]:
            if item["product_id"] == product_id:
                item["quantity"] += quantity
                break
        else:
            item = {"id": uuid.uuid4().hex, "product_id": product_id, "quantity": quantity}
            cart["items"].append(item)
        _touch(cart)
        _save_carts(carts)
        return dict(item)

def set_quantity(user_id: str, product_id: str, quantity: int) -> bool:
    """Replace the line's quantity (0 deletes). False if the user has no cart."""
    with _LOCK:
        carts = _load_carts()
        cart = carts.get(user_id)
        if cart is None:
            return False
        if quantity <= 0:
            cart["items"] = [it for it in cart["items"] if it["product_id"] != product_id]
        else:
            for item in cart["items"]:
                if item["product_id"] == product_id:
                    item["quantity"] = quantity
        _touch(cart)
        _save_carts(carts)
        return True

def delete_item(user_id: str, product_id: str) -> bool:
    return set_quantity(user_id, product_id, 0)

def clear(user_id: str) -> None:
    with _LOCK:
        carts = _load_carts()
        cart = carts.get(user_id)
        if cart is None:
            return
        cart["items"] = []
        _touch(cart)
        _save_carts(carts)
