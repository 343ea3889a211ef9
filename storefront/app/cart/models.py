# storefront/app/cart/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class CartValidationError(ValueError):
    """Raised synchronously for bad mutation input; never reaches the network."""


class SyncState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


def to_price(value: Any) -> Decimal:
    """Coerce a catalog/wire price (str, int, float, Decimal) into a non-negative Decimal."""
    if isinstance(value, bool):
        raise CartValidationError(f"invalid price: {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise CartValidationError(f"invalid price: {value!r}") from e
    if not price.is_finite() or price < 0:
        raise CartValidationError(f"price must be a non-negative number, got {value!r}")
    return price


def new_line_id(product_id: str) -> str:
    return f"{product_id}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Product:
    """Catalog snapshot taken at add time."""

    id: str
    name: str
    price: Decimal
    image: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise CartValidationError("product id is required")
        # callers may pass float/int/str prices; totals are summed as Decimal
        object.__setattr__(self, "price", to_price(self.price))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        return cls(
            id=str(data.get("id") or "").strip(),
            name=str(data.get("name") or ""),
            price=data.get("price", 0),
            image=data.get("image") or None,
        )


@dataclass(frozen=True)
class CartLine:
    line_id: str
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    image: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLine":
        return cls(
            line_id=new_line_id(product.id),
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=quantity,
            image=product.image,
        )

    @classmethod
    def from_wire(cls, item: Mapping[str, Any]) -> "CartLine":
        """Build a line from a Cart Store `GET /api/cart` item."""
        return cls(
            line_id=str(item["id"]),
            product_id=str(item["product_id"]),
            name=str(item.get("name") or ""),
            unit_price=to_price(item.get("price", 0)),
            quantity=int(item["quantity"]),
            image=item.get("image") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.line_id,
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.unit_price),
            "image": self.image,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class CartSnapshot:
    lines: Tuple[CartLine, ...] = field(default_factory=tuple)
    sync_state: SyncState = SyncState.IDLE

    @property
    def total(self) -> Decimal:
        # Derived from the current lines on every access.
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def find_line(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.line_id == line_id), None)

    def find_product(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.product_id == product_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.lines],
            "total": str(self.total),
            "sync_state": self.sync_state.value,
        }


EMPTY_CART = CartSnapshot()
