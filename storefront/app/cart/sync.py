# storefront/app/cart/sync.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, runtime_checkable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.app.cart.models import CartLine
from storefront.app.core.config import settings
from storefront.app.core.metrics import cart_sync_counter, cart_sync_duration
from storefront.app.integrations.cart_store.client import CartStoreError

log = logging.getLogger(__name__)


@runtime_checkable
class CartStore(Protocol):
    """Server-of-record operations the engine depends on."""
    async def load_cart(self, identity: str) -> List[CartLine]: ...
    async def upsert_line(self, identity: str, product_id: str, quantity: int) -> None: ...
    async def replace_quantity(self, identity: str, product_id: str, quantity: int) -> None: ...
    async def delete_line(self, identity: str, product_id: str) -> None: ...
    async def clear_cart(self, identity: str) -> None: ...
    async def create_order(self, identity: str) -> str: ...


@dataclass(frozen=True)
class SyncOp:
    """One remote projection of a local mutation."""

    op: str  # upsert|replace|delete|clear
    identity: str
    product_id: Optional[str] = None
    quantity: Optional[int] = None


def upsert(identity: str, product_id: str, quantity: int) -> SyncOp:
    return SyncOp("upsert", identity, product_id, quantity)


def replace_quantity(identity: str, product_id: str, quantity: int) -> SyncOp:
    # zero is a delete on the server-of-record
    if quantity == 0:
        return delete(identity, product_id)
    return SyncOp("replace", identity, product_id, quantity)


def delete(identity: str, product_id: str) -> SyncOp:
    return SyncOp("delete", identity, product_id)


def clear(identity: str) -> SyncOp:
    return SyncOp("clear", identity)


class CartSynchronizer:
    """
    Sends SyncOps to the CartStore and reports success as a bool.

    Store failures are logged and counted here and never raised. Calls are not
    queued or serialized against each other; `max_attempts` > 1 adds
    exponential backoff between attempts of the same call.
    """

    def __init__(
        self,
        store: CartStore,
        *,
        max_attempts: Optional[int] = None,
        backoff_max: Optional[float] = None,
    ) -> None:
        self.store = store
        self.max_attempts = max_attempts or settings.cart_sync_max_attempts
        self.backoff_max = settings.cart_sync_backoff_max_seconds if backoff_max is None else backoff_max

    def _call_for(self, op: SyncOp) -> Callable[[], Awaitable[None]]:
        if op.op == "upsert":
            return lambda: self.store.upsert_line(op.identity, op.product_id, op.quantity)
        if op.op == "replace":
            return lambda: self.store.replace_quantity(op.identity, op.product_id, op.quantity)
        if op.op == "delete":
            return lambda: self.store.delete_line(op.identity, op.product_id)
        if op.op == "clear":
            return lambda: self.store.clear_cart(op.identity)
        raise ValueError(f"unknown sync op: {op.op}")

    async def push(self, op: SyncOp) -> bool:
        call = self._call_for(op)
        stop_timer = cart_sync_duration.timer(labels={"op": op.op})
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(CartStoreError),
                wait=wait_exponential(multiplier=0.25, min=0.25, max=self.backoff_max),
                stop=stop_after_attempt(self.max_attempts),
                reraise=True,
            ):
                with attempt:
                    await call()
        except CartStoreError as e:
            cart_sync_counter.inc(labels={"op": op.op, "result": "fail"})
            log.warning(
                "cart sync failed: op=%s product_id=%s identity=%s error=%s",
                op.op, op.product_id, op.identity, e,
                extra={"op": op.op, "product_id": op.product_id, "identity": op.identity, "result": "fail"},
            )
            return False
        finally:
            stop_timer()

        cart_sync_counter.inc(labels={"op": op.op, "result": "ok"})
        log.debug(
            "cart sync ok: op=%s product_id=%s",
            op.op, op.product_id,
            extra={"op": op.op, "product_id": op.product_id, "identity": op.identity, "result": "ok"},
        )
        return True
