"""TokenRedirectGateway: Khalti ePayment v2.

The server opens a payment session (``epayment/initiate/``) and sends the
browser to the returned ``payment_url``. Khalti redirects back with ``pidx``;
proof of payment is a server-side ``epayment/lookup/`` on that pidx.
Amounts are paisa on both legs.
"""
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from src.sf_common.enums import PaymentMethod
from src.sf_common.errors import PaymentGatewayError
from src.sf_payment.domain.models import PaymentInstruction, PaymentRequest, VerificationResult
from src.sf_settings.domain.models import StoreSettings

logger = logging.getLogger(__name__)

KHALTI_SANDBOX_URL = "https://dev.khalti.com/api/v2/"
KHALTI_LIVE_URL = "https://khalti.com/api/v2/"
PAID_STATUSES = frozenset({"Completed", "Refunded"})


class TokenRedirectGateway:
    tag = PaymentMethod.KHALTI.value

    def __init__(
        self,
        callback_url: str,
        website_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._callback_url = callback_url
        self._website_url = website_url
        self._timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any], store: StoreSettings) -> dict[str, Any]:
        if not store.khalti_secret:
            logger.error("Khalti enabled without a secret key")
            raise PaymentGatewayError()
        base_url = KHALTI_SANDBOX_URL if store.khalti_sandbox else KHALTI_LIVE_URL
        headers = {"Authorization": f"Key {store.khalti_secret}"}
        try:
            async with httpx.AsyncClient(
                base_url=base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Khalti %s failed: %r", path, e)
            raise PaymentGatewayError() from None
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400 or not isinstance(body, dict):
            logger.error("Khalti %s rejected (HTTP %d): %s", path, response.status_code, response.text)
            raise PaymentGatewayError()
        return body

    async def prepare(self, request: PaymentRequest, store: StoreSettings) -> PaymentInstruction:
        payload = {
            "return_url": f"{self._callback_url}?gateway=khalti",
            "website_url": self._website_url,
            "amount": request.amount,
            "purchase_order_id": request.order_id,
            "purchase_order_name": f"Order #{request.order_id[-6:]}",
            "customer_info": {
                "name": request.customer_name,
                "email": request.customer_email,
                "phone": request.customer_phone,
            },
        }
        body = await self._post("epayment/initiate/", payload, store)
        payment_url = body.get("payment_url")
        if not payment_url:
            logger.error("Khalti initiate for %s returned no payment_url: %s", request.order_id, body)
            raise PaymentGatewayError()
        return PaymentInstruction(
            method=self.tag, kind="REDIRECT", url=payment_url, reference=body.get("pidx")
        )

    async def verify(self, params: Mapping[str, str], store: StoreSettings) -> VerificationResult:
        order_id = params.get("purchase_order_id") or None
        pidx = params.get("pidx")
        if not pidx:
            return VerificationResult(order_id=order_id, verified=False)
        try:
            body = await self._post("epayment/lookup/", {"pidx": pidx}, store)
        except PaymentGatewayError:
            return VerificationResult(order_id=order_id, verified=False)
        status = body.get("status")
        if status not in PAID_STATUSES:
            logger.info("Khalti pidx %s for order %s is %s", pidx, order_id, status)
            return VerificationResult(order_id=order_id, verified=False)
        amount = body.get("total_amount")
        return VerificationResult(
            order_id=order_id,
            verified=True,
            amount=int(amount) if isinstance(amount, (int, float)) else None,
        )
