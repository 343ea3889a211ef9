# storefront/app/cart/engine.py
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Coroutine, List, Mapping, Optional, Set, Union

from storefront.app.cart import sync
from storefront.app.cart.actions import (
    AddItem,
    CartAction,
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
from storefront.app.cart.reducer import reduce, validate_quantity
from storefront.app.cart.sync import CartStore, CartSynchronizer, SyncOp
from storefront.app.core.session import SessionSource
from storefront.app.integrations.cart_store.client import CartStoreClient, CartStoreError

log = logging.getLogger(__name__)

StateListener = Callable[[CartSnapshot], None]


class HydrationPhase(str, Enum):
    ANONYMOUS = "anonymous"
    HYDRATING = "hydrating"
    HYDRATED = "hydrated"


class CartClosedError(RuntimeError):
    """Raised when a mutation is issued after `close()`."""


class CartEngine:
    """
    Client-held cart with optimistic updates against a server-of-record.

    Mutations apply to the local snapshot immediately and then schedule a
    background call on the CartStore (only while someone is logged in). The
    engine follows the injected SessionSource: login loads the server cart,
    logout clears the local one. Create it inside the running event loop.

    Usage:
        session = SessionSource()
        engine = CartEngine(CartStoreClient(), session)
        session.set_identity("user-1")       # hydrates in the background
        engine.add_item(product)              # visible in engine.state at once
        await engine.drain()
    """

    def __init__(
        self,
        store: CartStore,
        session: SessionSource,
        *,
        synchronizer: Optional[CartSynchronizer] = None,
    ) -> None:
        self._store = store
        self._sync = synchronizer or CartSynchronizer(store)
        self._session = session
        self._state: CartSnapshot = EMPTY_CART
        self._phase = HydrationPhase.ANONYMOUS
        self._identity: Optional[str] = None
        # bumped on logout/switch; results started under an older epoch are dropped
        self._epoch = 0
        self._closed = False
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []
        self._unsubscribe = session.subscribe(self._on_identity_change)
        if session.identity is not None:
            self._on_identity_change(None, session.identity)

    @classmethod
    def connect(
        cls,
        session: SessionSource,
        *,
        base_url: Optional[str] = None,
        **client_kwargs: Any,
    ) -> "CartEngine":
        """Build an engine talking HTTP to the Cart Store Service at `base_url`."""
        return cls(CartStoreClient(base_url, **client_kwargs), session)

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> CartSnapshot:
        return self._state

    @property
    def phase(self) -> HydrationPhase:
        return self._phase

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of background calls still in flight."""
        return len(self._tasks)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call `listener(snapshot)` after every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def add_item(self, product: Union[Product, Mapping[str, Any]], quantity: int = 1) -> CartSnapshot:
        self._ensure_open()
        if not isinstance(product, Product):
            product = Product.from_dict(product)
        quantity = validate_quantity(quantity)

        self._dispatch(AddItem(CartLine.from_product(product, quantity)))
        if self._identity is not None:
            self._push(sync.upsert(self._identity, product.id, quantity))
        return self._state

    def set_quantity(self, line_id: str, quantity: int) -> CartSnapshot:
        self._ensure_open()
        quantity = validate_quantity(quantity, allow_zero=True)
        line = self._state.find_line(line_id)
        if line is None:
            return self._state

        self._dispatch(SetQuantity(line_id, quantity))
        if self._identity is not None:
            self._push(sync.replace_quantity(self._identity, line.product_id, quantity))
        return self._state

    def remove_item(self, line_id: str) -> CartSnapshot:
        self._ensure_open()
        line = self._state.find_line(line_id)
        if line is None:
            return self._state

        self._dispatch(RemoveItem(line_id))
        if self._identity is not None:
            self._push(sync.delete(self._identity, line.product_id))
        return self._state

    def clear(self) -> CartSnapshot:
        self._ensure_open()
        self._dispatch(Clear())
        if self._identity is not None:
            self._push(sync.clear(self._identity))
        return self._state

    async def reload(self) -> bool:
        """Re-load the cart from the server-of-record; False if anonymous or the load failed."""
        self._ensure_open()
        if self._identity is None:
            return False
        return await self._begin_load(self._identity)

    async def checkout(self) -> str:
        """
        Place an order for the current cart and empty it.

        Needs a logged-in session and at least one line. A failed order call
        raises CartStoreError and leaves the cart untouched.
        """
        self._ensure_open()
        if not self._session.is_authenticated or self._identity is None:
            raise CartValidationError("log in to check out")
        if not self._state.lines:
            raise CartValidationError("cart is empty")

        identity = self._identity
        order_id = await self._store.create_order(identity)
        log.info(
            "order placed: identity=%s order_id=%s", identity, order_id,
            extra={"op": "checkout", "identity": identity, "result": "ok"},
        )
        if not self._closed and identity == self._identity:
            self.clear()
        return order_id

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait until every in-flight background call has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Stop accepting mutations; in-flight calls finish and their results are dropped."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()

    async def aclose(self) -> None:
        self.close()
        await self.drain()
        closer = getattr(self._store, "aclose", None)
        if closer is not None:
            await closer()

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise CartClosedError("cart engine is closed")

    def _dispatch(self, action: CartAction) -> None:
        new_state = reduce(self._state, action)
        if new_state is self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def _is_current(self, epoch: int, identity: str) -> bool:
        return not self._closed and epoch == self._epoch and identity == self._identity

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("cart background task crashed", exc_info=exc)

    def _push(self, op: SyncOp) -> None:
        self._dispatch(SetSyncState(SyncState.LOADING))
        self._spawn(self._run_sync(op, self._epoch))

    async def _run_sync(self, op: SyncOp, epoch: int) -> bool:
        try:
            ok = await self._sync.push(op)
        except Exception:
            log.exception(
                "cart sync crashed: op=%s identity=%s", op.op, op.identity,
                extra={"op": op.op, "product_id": op.product_id, "identity": op.identity, "result": "fail"},
            )
            ok = False
        if self._is_current(epoch, op.identity):
            # last response wins
            self._dispatch(SetSyncState(SyncState.IDLE if ok else SyncState.ERROR))
        return ok

    def _begin_load(self, identity: str) -> Coroutine[Any, Any, bool]:
        self._phase = HydrationPhase.HYDRATING
        self._dispatch(SetSyncState(SyncState.LOADING))
        return self._load(identity, self._epoch)

    async def _load(self, identity: str, epoch: int) -> bool:
        try:
            lines = await self._store.load_cart(identity)
        except CartStoreError as e:
            if self._is_current(epoch, identity):
                self._dispatch(SetSyncState(SyncState.ERROR))
            log.warning(
                "cart load failed: identity=%s error=%s", identity, e,
                extra={"op": "load", "identity": identity, "result": "fail"},
            )
            return False
        except Exception:
            if self._is_current(epoch, identity):
                self._dispatch(SetSyncState(SyncState.ERROR))
            log.exception(
                "cart load crashed: identity=%s", identity,
                extra={"op": "load", "identity": identity, "result": "fail"},
            )
            return False

        if not self._is_current(epoch, identity):
            log.debug("discarding stale cart load for %s", identity)
            return False
        self._dispatch(Hydrate(tuple(lines)))
        self._phase = HydrationPhase.HYDRATED
        log.info(
            "cart hydrated: identity=%s lines=%d", identity, len(lines),
            extra={"op": "load", "identity": identity, "result": "ok"},
        )
        return True

    def _logout(self) -> None:
        self._epoch += 1
        self._identity = None
        self._phase = HydrationPhase.ANONYMOUS
        self._dispatch(Clear())
        self._dispatch(SetSyncState(SyncState.IDLE))

    def _on_identity_change(self, previous: Optional[str], current: Optional[str]) -> None:
        if self._closed:
            return
        if current is None:
            # server-side rows stay for the next login
            self._logout()
            return
        if self._identity is not None and self._identity != current:
            self._logout()
        self._identity = current
        self._spawn(self._begin_load(current))
