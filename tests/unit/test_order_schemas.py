"""Request validation for checkout, delivery assignment and courier webhooks."""

import pytest
from pydantic import ValidationError

from src.sf_order.application.schemas import (
    AddressIn,
    AssignDeliveryRequest,
    CourierWebhookPayload,
    PlaceOrderRequest,
    UpdateStatusRequest,
)

ADDRESS = {
    "full_name": "Sita Sharma",
    "phone": "9800000000",
    "province": "Bagmati",
    "city": "Kathmandu",
    "street": "Baneshwor 10",
}


class TestAddressIn:
    def test_phone_formats_accepted(self) -> None:
        assert AddressIn(**{**ADDRESS, "phone": " +977 980-0000000 "}).phone == "+977 980-0000000"

    def test_phone_with_letters_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AddressIn(**{**ADDRESS, "phone": "98000abcde"})


class TestPlaceOrderRequest:
    def test_defaults_to_cod(self) -> None:
        req = PlaceOrderRequest(items=[{"product_id": "mug", "quantity": 1}], address=ADDRESS)
        assert req.payment_method == "COD"
        assert req.email is None

    def test_empty_cart_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaceOrderRequest(items=[], address=ADDRESS)

    def test_zero_quantity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaceOrderRequest(items=[{"product_id": "mug", "quantity": 0}], address=ADDRESS)

    def test_unknown_payment_method_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaceOrderRequest(
                items=[{"product_id": "mug", "quantity": 1}], address=ADDRESS, payment_method="CARD"
            )


class TestAssignDeliveryRequest:
    def test_rider_requires_rider_id(self) -> None:
        with pytest.raises(ValidationError, match="Please select a rider"):
            AssignDeliveryRequest(method="RIDER")

    def test_other_requires_courier_and_tracking(self) -> None:
        with pytest.raises(ValidationError):
            AssignDeliveryRequest(method="OTHER", courier_name="Upaya")

    def test_other_complete(self) -> None:
        req = AssignDeliveryRequest(method="OTHER", courier_name="Upaya", tracking_id="UP-1")
        assert req.tracking_id == "UP-1"

    def test_pathao_needs_nothing(self) -> None:
        assert AssignDeliveryRequest(method="PATHAO").item_weight is None

    def test_non_positive_weight_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AssignDeliveryRequest(method="PATHAO", item_weight=0)


class TestUpdateStatusRequest:
    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UpdateStatusRequest(status="LOST")


class TestCourierWebhookPayload:
    def test_single_order_id_wins(self) -> None:
        payload = CourierWebhookPayload(order_id=121224, order_ids=["A", "B"])
        assert payload.tracking_codes == ["121224"]

    def test_order_ids_list(self) -> None:
        payload = CourierWebhookPayload(order_ids=["DL1", "", 42])
        assert payload.tracking_codes == ["DL1", "42"]

    def test_empty(self) -> None:
        assert CourierWebhookPayload(test=True).tracking_codes == []
