"""PathaoClient: the courier API adapter.

Every call authenticates with a bearer token from the instance's TokenCache
and has an explicit timeout. Transport failures and timeouts surface as
CourierError, the same as an explicit error response. A 401 drops the cached
token and retries once with a fresh one.

Endpoints (all under /aladdin/api/v1):
  POST issue-token                password grant
  GET  stores                     merchant pickup stores (first one is used)
  GET  city-list | cities/{id}/zone-list | zones/{id}/area-list
  POST merchant/price-plan        quote
  POST orders                     create shipment
  POST orders/{id}/cancel         cancel shipment
  GET  orders/{id}/info           shipment status
"""
import json
import logging
import time
from decimal import Decimal
from typing import Any

import httpx

from src.sf_common.errors import CourierError
from src.sf_delivery.domain.models import DeliveryToken, ShipmentResult
from src.sf_delivery.domain.token_cache import InMemoryTokenStore, TokenCache, TokenStore

logger = logging.getLogger(__name__)

_API = "/aladdin/api/v1"
ITEM_TYPE_PARCEL = 2
DELIVERY_TYPE_NORMAL = 48
COURIER_NAME = "Pathao"


class PathaoClient:
    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        token_store: TokenStore | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credentials = {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "password",
            "username": username,
            "password": password,
        }
        self._timeout = timeout
        self._transport = transport
        self._tokens = TokenCache(token_store or InMemoryTokenStore(), self._issue_token)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.request(method, f"{_API}{path}", json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.warning("Pathao %s %s timed out after %.1fs", method, path, self._timeout)
            raise CourierError("Courier service timed out, please try again") from None
        except httpx.HTTPError as e:
            logger.warning("Pathao %s %s failed: %s", method, path, e)
            raise CourierError("Courier service is unreachable") from None

    async def _authorized(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> httpx.Response:
        token = await self._tokens.get()
        response = await self._send(method, path, payload=payload, token=token)
        if response.status_code == 401:
            await self._tokens.invalidate()
            token = await self._tokens.get()
            response = await self._send(method, path, payload=payload, token=token)
        return response

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise CourierError(
                f"Unexpected courier response (HTTP {response.status_code})"
            ) from None
        if not isinstance(body, dict):
            raise CourierError(f"Unexpected courier response (HTTP {response.status_code})")
        return body

    async def _issue_token(self) -> DeliveryToken:
        response = await self._send("POST", "/issue-token", payload=self._credentials)
        body = self._body(response)
        access_token = body.get("access_token")
        if not access_token:
            logger.error("Pathao token issuance rejected: HTTP %d", response.status_code)
            raise CourierError("Failed to get Pathao access token")
        try:
            expires_in = float(body.get("expires_in", 0))
        except (TypeError, ValueError):
            raise CourierError("Unexpected Pathao token response") from None
        logger.info("Issued new Pathao access token (expires_in=%s)", expires_in)
        return DeliveryToken.issued(access_token, expires_in, time.time())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_store_id(self) -> int:
        """Merchant pickup store; resolved on every call, not cached."""
        body = self._body(await self._authorized("GET", "/stores"))
        try:
            stores = (body.get("data") or {}).get("data") or []
            store_id = int(stores[0]["store_id"]) if stores else None
        except (AttributeError, KeyError, TypeError, ValueError):
            raise CourierError("Unexpected Pathao store list") from None
        if store_id is None:
            raise CourierError("No active Pathao store found")
        return store_id

    async def _list(self, path: str) -> list[dict[str, Any]]:
        body = self._body(await self._authorized("GET", path))
        return list((body.get("data") or {}).get("data") or [])

    async def get_cities(self) -> list[dict[str, Any]]:
        return await self._list("/city-list")

    async def get_zones(self, city_id: int) -> list[dict[str, Any]]:
        return await self._list(f"/cities/{city_id}/zone-list")

    async def get_areas(self, zone_id: int) -> list[dict[str, Any]]:
        return await self._list(f"/zones/{zone_id}/area-list")

    # ------------------------------------------------------------------
    # Quote / shipments
    # ------------------------------------------------------------------

    async def get_price_plan(self, city_id: int, zone_id: int, weight_kg: Decimal) -> dict[str, Any]:
        """Provider quote, e.g. ``{"price": 150, "final_price": 145, ...}`` (rupees)."""
        store_id = await self.get_store_id()
        payload = {
            "store_id": store_id,
            "item_type": ITEM_TYPE_PARCEL,
            "delivery_type": DELIVERY_TYPE_NORMAL,
            "item_weight": float(weight_kg),
            "recipient_city": city_id,
            "recipient_zone": zone_id,
        }
        body = self._body(await self._authorized("POST", "/merchant/price-plan", payload))
        data = body.get("data")
        if not isinstance(data, dict):
            raise CourierError(str(body.get("message") or "Courier could not quote this parcel"))
        return data

    async def create_order(self, order_data: dict[str, Any]) -> ShipmentResult:
        """Create a shipment. Provider rejections come back as ``error`` text, verbatim."""
        try:
            store_id = await self.get_store_id()
            response = await self._authorized(
                "POST", "/orders", {"store_id": store_id, **order_data}
            )
            body = self._body(response)
        except CourierError as e:
            return ShipmentResult(success=False, error=e.message)

        if body.get("type") == "success":
            data = body.get("data") or {}
            consignment_id = data.get("consignment_id")
            if consignment_id:
                return ShipmentResult(success=True, consignment_id=str(consignment_id))
        errors = body.get("errors")
        error = json.dumps(errors) if errors else body.get("message")
        logger.warning("Pathao rejected shipment for %s: %s", order_data.get("merchant_order_id"), error)
        return ShipmentResult(success=False, error=error or "Failed to create order with Pathao")

    async def cancel_order(self, consignment_id: str) -> bool:
        """Best-effort cancellation; never raises."""
        try:
            response = await self._authorized("POST", f"/orders/{consignment_id}/cancel")
            body = self._body(response)
        except CourierError as e:
            logger.warning("Pathao cancel %s failed: %s", consignment_id, e.message)
            return False
        if body.get("type") == "success" or body.get("code") == 200:
            return True
        logger.warning("Pathao refused to cancel %s: %s", consignment_id, body.get("message"))
        return False

    async def get_order_info(self, consignment_id: str) -> dict[str, Any] | None:
        """Live shipment info (``{"order_status": "Pending", ...}``) or None."""
        try:
            response = await self._authorized("GET", f"/orders/{consignment_id}/info")
            if response.status_code != 200:
                return None
            data = self._body(response).get("data")
        except CourierError as e:
            logger.warning("Pathao tracking %s failed: %s", consignment_id, e.message)
            return None
        return data if isinstance(data, dict) else None
