from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException

from storefront.app.services import cart_store, catalog

router = APIRouter(prefix="/api", tags=["cart"])

log = logging.getLogger(__name__)


def require_identity(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Session issuance lives upstream; by the time we're called the identity is a header."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def _product_id(payload: Dict[str, Any]) -> str:
    pid = payload.get("product_id")
    if not isinstance(pid, str) or not pid.strip():
        raise HTTPException(status_code=400, detail="product_id is required")
    return pid.strip()


def _quantity(payload: Dict[str, Any], *, default: Optional[int] = None) -> Optional[int]:
    qty = payload.get("quantity", default)
    if qty is None:
        return None
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise HTTPException(status_code=400, detail="quantity must be an integer")
    return qty


def _to_item(line: Dict[str, Any]) -> Dict[str, Any]:
    product = catalog.get_product(line["product_id"]) or {}
    return {
        "id": line["id"],
        "product_id": line["product_id"],
        "name": product.get("name", ""),
        "price": product.get("price", 0),
        "image": product.get("image"),
        "quantity": line["quantity"],
    }


@router.get("/cart")
def get_cart(user_id: str = Depends(require_identity)) -> Dict[str, Any]:
    # lazily creates an empty cart on first read
    items = cart_store.list_items(user_id)
    return {"items": [_to_item(it) for it in items]}


@router.post("/cart")
def add_to_cart(
    payload: Dict[str, Any] = Body(default={}),
    user_id: str = Depends(require_identity),
) -> Dict[str, Any]:
    product_id = _product_id(payload)
    quantity = _quantity(payload, default=1)
    if quantity is None or quantity <= 0:
        raise HTTPException(status_code=400, detail="quantity must be positive")
    if catalog.get_product(product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    line = cart_store.add_item(user_id, product_id, quantity)
    log.info("cart add user=%s product=%s qty=%d", user_id, product_id, quantity)
    return {"message": "Item added to cart", "item": _to_item(line)}


@router.put("/cart")
def update_cart_item(
    payload: Dict[str, Any] = Body(default={}),
    user_id: str = Depends(require_identity),
) -> Dict[str, Any]:
    product_id = _product_id(payload)
    quantity = _quantity(payload)
    if quantity is None or quantity < 0:
        raise HTTPException(status_code=400, detail="Invalid data")

    if not cart_store.set_quantity(user_id, product_id, quantity):
        raise HTTPException(status_code=404, detail="Cart not found")
    return {"message": "Cart updated"}


@router.delete("/cart")
def remove_cart_item(
    payload: Dict[str, Any] = Body(default={}),
    user_id: str = Depends(require_identity),
) -> Dict[str, Any]:
    product_id = _product_id(payload)
    if not cart_store.delete_item(user_id, product_id):
        raise HTTPException(status_code=404, detail="Cart not found")
    return {"message": "Item removed from cart"}


@router.post("/cart/clear")
def clear_cart(user_id: str = Depends(require_identity)) -> Dict[str, Any]:
    cart_store.clear(user_id)
    return {"message": "Cart cleared"}
