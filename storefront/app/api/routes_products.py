from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Path as PathParam

from storefront.app.api.routes_cart import require_identity
from storefront.app.services import catalog

router = APIRouter(prefix="/api", tags=["products"])


def _clean_fields(payload: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    if "name" in payload or not partial:
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise HTTPException(status_code=400, detail="name must be a non-empty string")
        fields["name"] = name.strip()

    if "price" in payload or not partial:
        price = payload.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise HTTPException(status_code=400, detail="price must be a non-negative number")
        fields["price"] = round(float(price), 2)

    for key in ("description", "image"):
        if key in payload:
            value = payload[key]
            if value is not None and not isinstance(value, str):
                raise HTTPException(status_code=400, detail=f"{key} must be string or null")
            fields[key] = value or ("" if key == "description" else None)

    return fields


@router.get("/products")
def list_products():
    return {"items": catalog.list_products()}


@router.get("/products/{product_id}")
def get_product(product_id: str):
    product = catalog.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/products", status_code=201)
def create_product(
    payload: Dict[str, Any] = Body(default={}),
    user_id: str = Depends(require_identity),
) -> Dict[str, Any]:
    return catalog.create_product(user_id, _clean_fields(payload, partial=False))


@router.put("/products/{product_id}")
def update_product(
    product_id: str = PathParam(...),
    payload: Dict[str, Any] = Body(default={}),
    user_id: str = Depends(require_identity),
) -> Dict[str, Any]:
    fields = _clean_fields(payload, partial=True)
    try:
        return catalog.update_product(product_id, user_id, fields)
    except catalog.ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")
    except catalog.NotProductOwner:
        raise HTTPException(status_code=403, detail="You can only edit your own products")
