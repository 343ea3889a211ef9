from __future__ import annotations

import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from storefront.app.cart.models import Product
from storefront.app.services.json_store import load_json, save_json, store_file

MOCK_PRODUCTS: List[Dict[str, Any]] = [
    {"id": "p-tee", "name": "Classic Tee", "price": 19.99, "image": "/assets/tee.png"},
    {"id": "p-hoodie", "name": "Zip Hoodie", "price": 49.50, "image": "/assets/hoodie.png"},
    {"id": "p-cap", "name": "Logo Cap", "price": 12.00, "image": None},
    {"id": "p-mug", "name": "Enamel Mug", "price": 10.00, "image": "/assets/mug.png"},
]

# Fields a seller may set on create/update
EDITABLE_FIELDS = ("name", "description", "price", "image")

_LOCK = threading.RLock()


class ProductNotFound(LookupError):
    pass


class NotProductOwner(PermissionError):
    pass


def _seed() -> Dict[str, Dict[str, Any]]:
    return {
        p["id"]: {**p, "description": "", "user_id": None, "created_at": 0.0}
        for p in MOCK_PRODUCTS
    }

def _products_file() -> Path:
    return store_file("products.json")

def _load_products() -> Dict[str, Dict[str, Any]]:
    products = load_json(_products_file(), default=None)
    return products if isinstance(products, dict) else _seed()


def list_products() -> List[Dict[str, Any]]:
    """All products, oldest first."""
    with _LOCK:
        products = _load_products()
    return sorted((dict(p) for p in products.values()), key=lambda p: p.get("created_at") or 0.0)


def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    with _LOCK:
        p = _load_products().get(product_id)
    return dict(p) if p else None


def create_product(owner: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    product = {
        "id": f"p-{uuid.uuid4().hex[:10]}",
        "name": fields["name"],
        "description": fields.get("description") or "",
        "price": fields["price"],
        "image": fields.get("image") or None,
        "user_id": owner,
        "created_at": time.time(),
    }
    with _LOCK:
        products = _load_products()
        products[product["id"]] = product
        save_json(_products_file(), products)
    return dict(product)


def update_product(product_id: str, owner: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Apply `fields` to a product the caller listed; catalog seed items have no owner."""
    with _LOCK:
        products = _load_products()
        product = products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product.get("user_id") != owner:
            raise NotProductOwner(product_id)
        for key in EDITABLE_FIELDS:
            if key in fields:
                product[key] = fields[key]
        save_json(_products_file(), products)
        return dict(product)


def product_snapshot(product_id: str) -> Optional[Product]:
    """The add-time snapshot the cart engine expects."""
    p = get_product(product_id)
    return Product.from_dict(p) if p else None
