"""Unit tests for the eSewa form gateway and the Khalti token gateway."""

import base64
import hashlib
import hmac
import json

import httpx
import pytest

from src.sf_common.errors import PaymentGatewayError
from src.sf_payment.domain.models import PaymentRequest
from src.sf_payment.infrastructure.esewa import (
    ESEWA_LIVE_URL,
    ESEWA_SANDBOX_PRODUCT_CODE,
    ESEWA_SANDBOX_SECRET,
    ESEWA_SANDBOX_URL,
    FormRedirectGateway,
    order_id_from_uuid,
    sign,
    transaction_uuid_for,
)
from src.sf_payment.infrastructure.khalti import TokenRedirectGateway
from src.sf_settings.domain.models import StoreSettings

CALLBACK = "http://api.test/api/v1/payments/callback"
REQUEST = PaymentRequest(
    order_id="ord-000001",
    amount=115000,
    customer_name="Sita Sharma",
    customer_email="sita@example.com",
    customer_phone="9800000000",
)


def _hmac_b64(message: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _esewa_callback(fields: dict, secret: str = ESEWA_SANDBOX_SECRET) -> dict[str, str]:
    names = fields["signed_field_names"].split(",")
    message = ",".join(f"{n}={fields[n]}" for n in names)
    signed = {**fields, "signature": _hmac_b64(message, secret)}
    return {"gateway": "esewa", "data": base64.b64encode(json.dumps(signed).encode()).decode()}


COMPLETE = {
    "transaction_code": "000AWEO",
    "status": "COMPLETE",
    "total_amount": "1,150.0",
    "transaction_uuid": "ord-000001_1767225600000",
    "product_code": "EPAYTEST",
    "signed_field_names": "transaction_code,status,total_amount,transaction_uuid,product_code,signed_field_names",
}


class TestEsewaHelpers:
    def test_sign_matches_hmac_base64(self) -> None:
        fields = {"total_amount": "100", "transaction_uuid": "ab", "product_code": "EPAYTEST"}
        expected = _hmac_b64("total_amount=100,transaction_uuid=ab,product_code=EPAYTEST", "k")
        assert sign(fields, ("total_amount", "transaction_uuid", "product_code"), "k") == expected

    def test_transaction_uuid_round_trip(self) -> None:
        uuid = transaction_uuid_for("ord-000001", 1767225600000)
        assert uuid == "ord-000001_1767225600000"
        assert order_id_from_uuid(uuid) == "ord-000001"


class TestEsewaPrepare:
    async def test_sandbox_form(self) -> None:
        gateway = FormRedirectGateway(CALLBACK)
        instruction = await gateway.prepare(REQUEST, StoreSettings(esewa_sandbox=True))

        params = instruction.params
        assert instruction.kind == "FORM"
        assert instruction.url == ESEWA_SANDBOX_URL
        assert params["total_amount"] == "1150"
        assert params["product_code"] == ESEWA_SANDBOX_PRODUCT_CODE
        assert params["transaction_uuid"].startswith("ord-000001_")
        assert params["success_url"] == f"{CALLBACK}?gateway=esewa&status=success"
        assert params["failure_url"].endswith("status=failure&order_id=ord-000001")
        message = (
            f"total_amount=1150,transaction_uuid={params['transaction_uuid']},"
            f"product_code={ESEWA_SANDBOX_PRODUCT_CODE}"
        )
        assert params["signature"] == _hmac_b64(message, ESEWA_SANDBOX_SECRET)

    async def test_live_uses_store_credentials(self) -> None:
        store = StoreSettings(esewa_sandbox=False, esewa_merchant_code="NP-ES-1", esewa_secret="live")
        instruction = await FormRedirectGateway(CALLBACK).prepare(REQUEST, store)
        assert instruction.url == ESEWA_LIVE_URL
        assert instruction.params["product_code"] == "NP-ES-1"

    async def test_live_without_secret_fails(self) -> None:
        with pytest.raises(PaymentGatewayError):
            await FormRedirectGateway(CALLBACK).prepare(REQUEST, StoreSettings(esewa_sandbox=False))


class TestEsewaVerify:
    async def test_valid_callback(self) -> None:
        result = await FormRedirectGateway(CALLBACK).verify(_esewa_callback(COMPLETE), StoreSettings())
        assert result.verified
        assert result.order_id == "ord-000001"
        assert result.amount == 115000

    async def test_tampered_amount(self) -> None:
        params = _esewa_callback(COMPLETE)
        decoded = json.loads(base64.b64decode(params["data"]))
        decoded["total_amount"] = "1.0"
        params["data"] = base64.b64encode(json.dumps(decoded).encode()).decode()

        result = await FormRedirectGateway(CALLBACK).verify(params, StoreSettings())
        assert not result.verified
        assert result.order_id == "ord-000001"

    async def test_wrong_secret(self) -> None:
        params = _esewa_callback(COMPLETE, secret="not-the-secret")
        result = await FormRedirectGateway(CALLBACK).verify(params, StoreSettings())
        assert not result.verified

    async def test_incomplete_status(self) -> None:
        params = _esewa_callback({**COMPLETE, "status": "PENDING"})
        result = await FormRedirectGateway(CALLBACK).verify(params, StoreSettings())
        assert not result.verified

    async def test_garbage_data(self) -> None:
        result = await FormRedirectGateway(CALLBACK).verify({"data": "%%%"}, StoreSettings())
        assert not result.verified
        assert result.order_id is None

    async def test_missing_data_keeps_order_id(self) -> None:
        result = await FormRedirectGateway(CALLBACK).verify({"order_id": "ord-9"}, StoreSettings())
        assert not result.verified
        assert result.order_id == "ord-9"


class FakeKhalti:
    def __init__(self, lookup_status: str = "Completed", initiate_status: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.lookup_status = lookup_status
        self.initiate_status = initiate_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/epayment/initiate/"):
            if self.initiate_status != 200:
                return httpx.Response(self.initiate_status, json={"detail": "Invalid token."})
            return httpx.Response(
                200, json={"pidx": "bZQLD9wR", "payment_url": "https://test-pay.khalti.com/?pidx=bZQLD9wR"}
            )
        return httpx.Response(
            200, json={"pidx": "bZQLD9wR", "status": self.lookup_status, "total_amount": 115000}
        )


def _khalti(fake: FakeKhalti) -> TokenRedirectGateway:
    return TokenRedirectGateway(CALLBACK, "http://shop.test", transport=httpx.MockTransport(fake))


KHALTI_STORE = StoreSettings(enable_khalti=True, khalti_secret="test-key")


class TestKhalti:
    async def test_prepare_returns_redirect(self) -> None:
        fake = FakeKhalti()
        instruction = await _khalti(fake).prepare(REQUEST, KHALTI_STORE)

        assert instruction.kind == "REDIRECT"
        assert instruction.url == "https://test-pay.khalti.com/?pidx=bZQLD9wR"
        assert instruction.reference == "bZQLD9wR"
        sent = fake.requests[0]
        assert sent.url.host == "dev.khalti.com"
        assert sent.url.path == "/api/v2/epayment/initiate/"
        assert sent.headers["Authorization"] == "Key test-key"
        body = json.loads(sent.content)
        assert body["amount"] == 115000
        assert body["purchase_order_id"] == "ord-000001"
        assert body["return_url"] == f"{CALLBACK}?gateway=khalti"

    async def test_live_host(self) -> None:
        fake = FakeKhalti()
        store = StoreSettings(khalti_sandbox=False, khalti_secret="live-key")
        await _khalti(fake).prepare(REQUEST, store)
        assert fake.requests[0].url.host == "khalti.com"

    async def test_prepare_rejected(self) -> None:
        with pytest.raises(PaymentGatewayError):
            await _khalti(FakeKhalti(initiate_status=401)).prepare(REQUEST, KHALTI_STORE)

    async def test_prepare_without_secret(self) -> None:
        with pytest.raises(PaymentGatewayError):
            await _khalti(FakeKhalti()).prepare(REQUEST, StoreSettings())

    async def test_verify_completed(self) -> None:
        params = {"pidx": "bZQLD9wR", "purchase_order_id": "ord-000001"}
        result = await _khalti(FakeKhalti()).verify(params, KHALTI_STORE)
        assert result.verified
        assert result.amount == 115000
        assert result.order_id == "ord-000001"

    async def test_verify_pending(self) -> None:
        params = {"pidx": "bZQLD9wR", "purchase_order_id": "ord-000001"}
        result = await _khalti(FakeKhalti(lookup_status="Pending")).verify(params, KHALTI_STORE)
        assert not result.verified

    async def test_verify_without_pidx(self) -> None:
        fake = FakeKhalti()
        result = await _khalti(fake).verify({"purchase_order_id": "ord-1"}, KHALTI_STORE)
        assert not result.verified
        assert fake.requests == []

    async def test_verify_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        gateway = TokenRedirectGateway(CALLBACK, "http://shop.test", transport=httpx.MockTransport(handler))
        result = await gateway.verify({"pidx": "x", "purchase_order_id": "ord-1"}, KHALTI_STORE)
        assert not result.verified
