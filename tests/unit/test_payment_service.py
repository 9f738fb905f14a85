"""PaymentService: prepare ownership/method checks and callback redirect URLs."""

from unittest.mock import AsyncMock

import pytest

from src.sf_common.errors import (
    ConflictError,
    OrderNotFoundError,
    PaymentGatewayError,
    PaymentMethodUnavailableError,
)
from src.sf_payment.application.service import PaymentService
from src.sf_payment.domain.models import PaymentInstruction, VerificationResult
from src.sf_payment.infrastructure.registry import GatewayRegistry
from src.sf_settings.domain.models import StoreSettings
from tests.unit.fakes import FakeOrderRepository, FakeStoreSettings, make_order, make_user

SHOP = "http://shop.test"


class StubGateway:
    tag = "ESEWA"

    def __init__(self, result: VerificationResult | None = None, error: Exception | None = None) -> None:
        self.result = result or VerificationResult(order_id="ord-000001", verified=True, amount=115000)
        self.error = error
        self.prepared = []

    async def prepare(self, request, store):  # type: ignore[no-untyped-def]
        self.prepared.append(request)
        return PaymentInstruction(method=self.tag, kind="FORM", url="https://pay.test", params={"a": 1})

    async def verify(self, params, store):  # type: ignore[no-untyped-def]
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def orchestrator() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repo: FakeOrderRepository, gateway: StubGateway, orchestrator: AsyncMock) -> PaymentService:
    return PaymentService(
        registry=GatewayRegistry([gateway]),
        orders=repo,
        orchestrator=orchestrator,
        store_settings=FakeStoreSettings(StoreSettings(enable_esewa=True)),
        storefront_url=SHOP + "/",
    )


class TestRegistry:
    def test_lookup_is_case_insensitive(self, gateway: StubGateway) -> None:
        registry = GatewayRegistry([gateway])
        assert "esewa" in registry
        assert registry.get("Esewa") is gateway

    def test_unknown_tag(self) -> None:
        with pytest.raises(PaymentMethodUnavailableError):
            GatewayRegistry().get("KHALTI")


class TestPreparePayment:
    async def test_switches_method_and_builds_request(
        self, service: PaymentService, repo: FakeOrderRepository, gateway: StubGateway, db: AsyncMock
    ) -> None:
        user = make_user()
        repo.add(make_order(user_id=str(user.id)))

        response = await service.prepare_payment("ord-000001", "ESEWA", user, db)

        assert response.kind == "FORM"
        assert response.url == "https://pay.test"
        assert repo.orders["ord-000001"].payment_method == "ESEWA"
        assert gateway.prepared[0].amount == 115000
        assert gateway.prepared[0].customer_email == "sita@example.com"
        db.commit.assert_awaited()

    async def test_foreign_order_is_not_found(
        self, service: PaymentService, repo: FakeOrderRepository, db: AsyncMock
    ) -> None:
        repo.add(make_order(user_id="someone-else"))
        with pytest.raises(OrderNotFoundError):
            await service.prepare_payment("ord-000001", "ESEWA", make_user(), db)

    async def test_paid_order_rejected(
        self, service: PaymentService, repo: FakeOrderRepository, db: AsyncMock
    ) -> None:
        user = make_user()
        repo.add(make_order(user_id=str(user.id), payment_status="PAID"))
        with pytest.raises(ConflictError):
            await service.prepare_payment("ord-000001", "ESEWA", user, db)

    async def test_cancelled_order_rejected(
        self, service: PaymentService, repo: FakeOrderRepository, db: AsyncMock
    ) -> None:
        user = make_user()
        repo.add(make_order(user_id=str(user.id), status="CANCELLED"))
        with pytest.raises(ConflictError):
            await service.prepare_payment("ord-000001", "ESEWA", user, db)

    async def test_disabled_method_rejected(
        self, service: PaymentService, repo: FakeOrderRepository, db: AsyncMock
    ) -> None:
        user = make_user()
        repo.add(make_order(user_id=str(user.id)))
        with pytest.raises(PaymentMethodUnavailableError):
            await service.prepare_payment("ord-000001", "KHALTI", user, db)
        assert repo.orders["ord-000001"].payment_method == "COD"


class TestHandleCallback:
    async def test_unknown_gateway(self, service: PaymentService, db: AsyncMock) -> None:
        url = await service.handle_callback({"gateway": "paypal"}, db)
        assert url == f"{SHOP}/orders?status=failed"

    async def test_gateway_reported_failure(
        self, service: PaymentService, orchestrator: AsyncMock, db: AsyncMock
    ) -> None:
        params = {"gateway": "esewa", "status": "failure", "order_id": "ord-000001"}
        url = await service.handle_callback(params, db)
        assert url == f"{SHOP}/payment/ord-000001?status=failed"
        orchestrator.confirm_payment.assert_not_awaited()

    async def test_verified_payment_confirms_order(
        self, service: PaymentService, orchestrator: AsyncMock, db: AsyncMock
    ) -> None:
        url = await service.handle_callback({"gateway": "esewa", "data": "x"}, db)
        assert url == f"{SHOP}/orders/ord-000001?status=success"
        orchestrator.confirm_payment.assert_awaited_once_with("ord-000001", db, amount=115000)

    async def test_unverified_payment(
        self, service: PaymentService, gateway: StubGateway, orchestrator: AsyncMock, db: AsyncMock
    ) -> None:
        gateway.result = VerificationResult(order_id="ord-000001", verified=False)
        url = await service.handle_callback({"gateway": "esewa", "data": "x"}, db)
        assert url == f"{SHOP}/payment/ord-000001?status=failed"
        orchestrator.confirm_payment.assert_not_awaited()

    async def test_verifier_error(
        self, service: PaymentService, gateway: StubGateway, db: AsyncMock
    ) -> None:
        gateway.error = PaymentGatewayError()
        url = await service.handle_callback({"gateway": "esewa", "order_id": "ord-7"}, db)
        assert url == f"{SHOP}/payment/ord-7?status=failed"

    async def test_unknown_order(
        self, service: PaymentService, orchestrator: AsyncMock, db: AsyncMock
    ) -> None:
        orchestrator.confirm_payment.side_effect = OrderNotFoundError("ord-000001")
        url = await service.handle_callback({"gateway": "esewa", "data": "x"}, db)
        assert url == f"{SHOP}/orders?status=failed"

    async def test_underpaid_order(
        self, service: PaymentService, orchestrator: AsyncMock, db: AsyncMock
    ) -> None:
        orchestrator.confirm_payment.side_effect = ConflictError("Paid amount does not cover the order total")
        url = await service.handle_callback({"gateway": "esewa", "data": "x"}, db)
        assert url == f"{SHOP}/payment/ord-000001?status=failed"
