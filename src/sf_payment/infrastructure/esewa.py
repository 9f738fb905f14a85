"""FormRedirectGateway: eSewa ePay v2.

The browser POSTs a signed form to eSewa; eSewa redirects back to our
callback with a base64 JSON ``data`` param whose signature we recompute.

signature = base64(HMAC-SHA256(secret, "k1=v1,k2=v2,...")) over the fields
named in ``signed_field_names`` (request side: total_amount,
transaction_uuid, product_code).
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from typing import Any

from src.sf_common.datetime_utils import epoch_ms
from src.sf_common.enums import PaymentMethod
from src.sf_common.errors import PaymentGatewayError
from src.sf_common.money import paisa_to_rupee_str, rupees_to_paisa
from src.sf_payment.domain.models import PaymentInstruction, PaymentRequest, VerificationResult
from src.sf_settings.domain.models import StoreSettings

logger = logging.getLogger(__name__)

ESEWA_SANDBOX_URL = "https://rc-epay.esewa.com.np/api/epay/main/v2/form"
ESEWA_LIVE_URL = "https://epay.esewa.com.np/api/epay/main/v2/form"
# Public test credentials published by eSewa for the EPAYTEST merchant.
ESEWA_SANDBOX_PRODUCT_CODE = "EPAYTEST"
ESEWA_SANDBOX_SECRET = "8gBm/:&EnhH.1/q"

REQUEST_SIGNED_FIELDS = ("total_amount", "transaction_uuid", "product_code")


def sign(fields: Mapping[str, Any], names: tuple[str, ...], secret: str) -> str:
    message = ",".join(f"{name}={fields[name]}" for name in names)
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def transaction_uuid_for(order_id: str, attempt_ms: int) -> str:
    """eSewa rejects reused uuids, so every attempt gets its own suffix."""
    return f"{order_id}_{attempt_ms}"


def order_id_from_uuid(transaction_uuid: str) -> str:
    return transaction_uuid.split("_", 1)[0]


class FormRedirectGateway:
    tag = PaymentMethod.ESEWA.value

    def __init__(self, callback_url: str) -> None:
        self._callback_url = callback_url

    @staticmethod
    def _credentials(store: StoreSettings) -> tuple[str, str, str]:
        if store.esewa_sandbox:
            return ESEWA_SANDBOX_URL, ESEWA_SANDBOX_PRODUCT_CODE, ESEWA_SANDBOX_SECRET
        if not store.esewa_merchant_code or not store.esewa_secret:
            logger.error("eSewa live mode enabled without merchant code/secret")
            raise PaymentGatewayError()
        return ESEWA_LIVE_URL, store.esewa_merchant_code, store.esewa_secret

    async def prepare(self, request: PaymentRequest, store: StoreSettings) -> PaymentInstruction:
        url, product_code, secret = self._credentials(store)
        total = paisa_to_rupee_str(request.amount)
        params: dict[str, Any] = {
            "amount": total,
            "tax_amount": "0",
            "total_amount": total,
            "transaction_uuid": transaction_uuid_for(request.order_id, epoch_ms()),
            "product_code": product_code,
            "product_service_charge": "0",
            "product_delivery_charge": "0",
            "success_url": f"{self._callback_url}?gateway=esewa&status=success",
            "failure_url": (
                f"{self._callback_url}?gateway=esewa&status=failure&order_id={request.order_id}"
            ),
            "signed_field_names": ",".join(REQUEST_SIGNED_FIELDS),
        }
        params["signature"] = sign(params, REQUEST_SIGNED_FIELDS, secret)
        return PaymentInstruction(method=self.tag, kind="FORM", url=url, params=params)

    async def verify(self, params: Mapping[str, str], store: StoreSettings) -> VerificationResult:
        encoded = params.get("data")
        if not encoded:
            return VerificationResult(order_id=params.get("order_id"), verified=False)
        try:
            decoded = json.loads(base64.b64decode(encoded).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            logger.warning("eSewa callback carried an undecodable data param")
            return VerificationResult(order_id=None, verified=False)
        if not isinstance(decoded, dict):
            return VerificationResult(order_id=None, verified=False)

        uuid = str(decoded.get("transaction_uuid") or "")
        order_id = order_id_from_uuid(uuid) if uuid else None
        if decoded.get("status") != "COMPLETE":
            logger.info("eSewa payment for %s not complete: %s", order_id, decoded.get("status"))
            return VerificationResult(order_id=order_id, verified=False)

        _, _, secret = self._credentials(store)
        names = tuple(
            n for n in str(decoded.get("signed_field_names") or "").split(",") if n
        ) or REQUEST_SIGNED_FIELDS
        try:
            expected = sign(decoded, names, secret)
        except KeyError as e:
            logger.warning("eSewa callback for %s missing signed field %s", order_id, e)
            return VerificationResult(order_id=order_id, verified=False)
        if not hmac.compare_digest(expected, str(decoded.get("signature") or "")):
            logger.warning("eSewa signature mismatch for transaction %s", uuid)
            return VerificationResult(order_id=order_id, verified=False)

        try:
            amount = rupees_to_paisa(str(decoded.get("total_amount")).replace(",", ""))
        except ArithmeticError:
            amount = None
        return VerificationResult(order_id=order_id, verified=True, amount=amount)
