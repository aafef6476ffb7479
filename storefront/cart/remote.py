"""Server-side cart store: protocol and HTTP client for /api/cart."""
from typing import List, Optional, Protocol

import httpx

from storefront.errors import CartSyncError
from storefront.logging import get_logger
from storefront.utils.api_errors import extract_api_error
from .models import CartLine

logger = get_logger(__name__)


class CartStore(Protocol):
    """
    Server-persisted cart of one authenticated user.

    Implementations raise CartSyncError on any failure.
    """

    async def fetch(self) -> List[CartLine]: ...

    async def upsert(self, product_id: str, variant_id: str, quantity: int) -> None: ...

    async def update(self, product_id: str, variant_id: str, quantity: int) -> None: ...

    async def delete(self, product_id: str, variant_id: str) -> None: ...


class HttpCartStore:
    """CartStore backed by the storefront cart API."""

    CART_PATH = "/api/cart"

    def __init__(
        self,
        base_url: str,
        access_token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._http_client = client
        self._owns_client = client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of the shared httpx client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        client = await self._get_http_client()
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            response = await client.request(
                method, f"{self.base_url}{self.CART_PATH}", headers=headers, **kwargs
            )
        except httpx.HTTPError as e:
            raise CartSyncError(f"{method} {self.CART_PATH} failed: {e}") from e

        if response.is_success:
            return response

        try:
            message = extract_api_error(response.json())
        except ValueError:
            message = response.text or response.reason_phrase
        raise CartSyncError(message, status_code=response.status_code)

    async def fetch(self) -> List[CartLine]:
        response = await self._request("GET")
        try:
            items = response.json().get("items") or []
            return [CartLine.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CartSyncError(f"Malformed cart response: {e}", status_code=response.status_code) from e

    async def upsert(self, product_id: str, variant_id: str, quantity: int) -> None:
        await self._request(
            "POST",
            json={"productId": product_id, "variantId": variant_id, "quantity": quantity},
        )

    async def update(self, product_id: str, variant_id: str, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("quantity must be positive; delete the line instead")
        await self._request(
            "PUT",
            json={"productId": product_id, "variantId": variant_id, "quantity": quantity},
        )

    async def delete(self, product_id: str, variant_id: str) -> None:
        await self._request(
            "DELETE",
            params={"productId": product_id, "variantId": variant_id},
        )
