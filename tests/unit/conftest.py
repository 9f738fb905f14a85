"""Order-domain fixtures shared by the orchestrator, saga and payment tests."""

from unittest.mock import AsyncMock

import pytest

from src.sf_delivery.domain.models import ShipmentResult
from tests.unit.fakes import FakeOrderRepository


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repo() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def pathao() -> AsyncMock:
    client = AsyncMock()
    client.create_order = AsyncMock(
        return_value=ShipmentResult(success=True, consignment_id="DL121224")
    )
    client.cancel_order = AsyncMock(return_value=True)
    client.get_price_plan = AsyncMock(return_value={"price": 150, "final_price": 145})
    client.get_order_info = AsyncMock(return_value={"order_status": "Pickup_Requested"})
    return client
