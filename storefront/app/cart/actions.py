# storefront/app/cart/actions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from storefront.app.cart.models import CartLine, SyncState


@dataclass(frozen=True)
class Hydrate:
    lines: Tuple[CartLine, ...]


@dataclass(frozen=True)
class AddItem:
    line: CartLine


@dataclass(frozen=True)
class SetQuantity:
    line_id: str
    quantity: int


@dataclass(frozen=True)
class RemoveItem:
    line_id: str


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SetSyncState:
    state: SyncState


CartAction = Union[Hydrate, AddItem, SetQuantity, RemoveItem, Clear, SetSyncState]
