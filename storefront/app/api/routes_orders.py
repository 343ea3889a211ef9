from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from storefront.app.api.routes_cart import require_identity

router = APIRouter(prefix="/api", tags=["orders"])

log = logging.getLogger(__name__)

# Order history is not persisted; every caller sees the sample order.
MOCK_ORDERS = [
    {
        "id": "mock1",
        "total_amount": 59.98,
        "status": "PAID",
        "created_at": "2024-01-01T00:00:00Z",
        "items": [
            {"product_id": "p-tee", "name": "Classic Tee", "price": 19.99, "quantity": 2},
            {"product_id": "p-cap", "name": "Logo Cap", "price": 12.00, "quantity": 1},
        ],
    }
]


@router.get("/orders")
def list_orders(user_id: str = Depends(require_identity)):
    return {"items": MOCK_ORDERS}


@router.post("/orders", status_code=201)
def create_order(user_id: str = Depends(require_identity)):
    order_id = "order_" + uuid.uuid4().hex[:8]
    log.info("order created: user=%s order_id=%s", user_id, order_id)
    return {"message": "Order created successfully", "order_id": order_id}
