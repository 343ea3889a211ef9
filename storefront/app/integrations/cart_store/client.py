# storefront/app/integrations/cart_store/client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from storefront.app.cart.models import CartLine
from storefront.app.core.config import settings

IDENTITY_HEADER = "X-User-Id"


class CartStoreError(RuntimeError):
    """Raised when the Cart Store Service is unreachable or answers non-2xx."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CartStoreClient:
    """
    Thin async wrapper around the Cart Store HTTP API.

    Every call is keyed by identity (sent as the X-User-Id header) and, for line
    operations, by product id. Pass `client` to reuse a pool or inject a test
    transport; otherwise one is created from settings and closed by `aclose()`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.cart_store_url,
            timeout=timeout or settings.cart_store_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CartStoreClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        identity: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            r = await self._client.request(
                method, path, json=payload, headers={IDENTITY_HEADER: identity}
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CartStoreError(
                f"{method} {path} -> {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise CartStoreError(f"{method} {path} failed: {e!r}") from e
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise CartStoreError(f"{method} {path} returned invalid JSON") from e

    # ---- operations ----

    async def load_cart(self, identity: str) -> List[CartLine]:
        data = await self._request("GET", "/api/cart", identity)
        if not isinstance(data, dict):
            raise CartStoreError(f"GET /api/cart returned {type(data).__name__}, expected an object")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise CartStoreError("GET /api/cart returned a non-list 'items'")
        try:
            return [CartLine.from_wire(it) for it in items]
        except (KeyError, TypeError, ValueError) as e:
            raise CartStoreError(f"GET /api/cart returned a malformed item: {e}") from e

    async def upsert_line(self, identity: str, product_id: str, quantity: int) -> None:
        """Increment the product's line by `quantity`, creating it if absent."""
        await self._request(
            "POST", "/api/cart", identity, {"product_id": product_id, "quantity": quantity}
        )

    async def replace_quantity(self, identity: str, product_id: str, quantity: int) -> None:
        await self._request(
            "PUT", "/api/cart", identity, {"product_id": product_id, "quantity": quantity}
        )

    async def delete_line(self, identity: str, product_id: str) -> None:
        await self._request("DELETE", "/api/cart", identity, {"product_id": product_id})

    async def clear_cart(self, identity: str) -> None:
        await self._request("POST", "/api/cart/clear", identity)

    async def create_order(self, identity: str) -> str:
        data = await self._request("POST", "/api/orders", identity)
        order_id = data.get("order_id") if isinstance(data, dict) else None
        if not order_id:
            raise CartStoreError("POST /api/orders returned no order_id")
        return str(order_id)
