"""Pydantic request/response schemas for sf_order.

All responses are wrapped in ApiResponse at the router layer. Amounts are
paisa.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from src.sf_order.domain.models import Order, OrderItem


class CartItem(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(..., ge=1)


class AddressIn(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=128)
    phone: str = Field(..., min_length=7, max_length=32)
    province: str = Field(..., min_length=1, max_length=64)
    city: str = Field(..., min_length=1, max_length=64)
    street: str = Field(..., min_length=1, max_length=255)
    city_id: int | None = None
    zone_id: int | None = None
    area_id: int | None = None

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, v: str) -> str:
        v = v.strip()
        if not v.lstrip("+").replace(" ", "").replace("-", "").isdigit():
            raise ValueError("phone must contain digits only")
        return v


class PlaceOrderRequest(BaseModel):
    items: list[CartItem] = Field(..., min_length=1)
    address: AddressIn
    payment_method: Literal["COD", "ESEWA", "KHALTI"] = "COD"
    coupon_code: str | None = Field(None, max_length=64)
    email: EmailStr | None = Field(None, description="Required for guest checkout")


class OrderItemResponse(BaseModel):
    product_id: str
    variant_id: str | None
    name: str
    quantity: int
    price: int

    @classmethod
    def from_domain(cls, item: OrderItem) -> "OrderItemResponse":
        return cls(
            product_id=item.product_id,
            variant_id=item.variant_id,
            name=item.name,
            quantity=item.quantity,
            price=item.price,
        )


class OrderResponse(BaseModel):
    id: str
    user_id: str
    status: str
    payment_status: str
    payment_method: str
    delivery_type: str
    courier: str | None
    tracking_code: str | None
    rider_id: str | None
    coupon_code: str | None
    sub_total: int
    shipping_cost: int
    discount: int
    total_amount: int
    shipping_address: dict
    phone: str
    items: list[OrderItemResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            delivery_type=order.delivery_type,
            courier=order.courier,
            tracking_code=order.tracking_code,
            rider_id=order.rider_id,
            coupon_code=order.coupon_code,
            sub_total=order.sub_total,
            shipping_cost=order.shipping_cost,
            discount=order.discount,
            total_amount=order.total_amount,
            shipping_address=order.shipping_address.to_dict(),
            phone=order.phone,
            items=[OrderItemResponse.from_domain(i) for i in order.items],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class PlaceOrderResponse(BaseModel):
    order: OrderResponse
    shipping_quoted: bool = Field(
        True, description="False when the courier could not quote and the flat rate was used"
    )


# --- Admin ---


class UpdateStatusRequest(BaseModel):
    status: Literal[
        "PENDING", "PROCESSING", "READY_TO_SHIP", "SHIPPED", "DELIVERED", "CANCELLED", "RETURNED"
    ]


class UpdatePaymentStatusRequest(BaseModel):
    payment_status: Literal["UNPAID", "PAID"]


class UpdateShippingCostRequest(BaseModel):
    shipping_cost: int = Field(..., ge=0)


class AssignDeliveryRequest(BaseModel):
    method: Literal["PATHAO", "RIDER", "OTHER"]
    # RIDER
    rider_id: str | None = None
    # OTHER
    courier_name: str | None = Field(None, max_length=64)
    tracking_id: str | None = Field(None, max_length=64)
    # PATHAO (recipient fields default to the order's address snapshot)
    recipient_name: str | None = None
    recipient_phone: str | None = None
    recipient_address: str | None = None
    recipient_city: int | None = None
    recipient_zone: int | None = None
    recipient_area: int | None = None
    item_weight: float | None = Field(None, gt=0)
    item_description: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def method_fields(self) -> "AssignDeliveryRequest":
        if self.method == "RIDER" and not self.rider_id:
            raise ValueError("Please select a rider")
        if self.method == "OTHER" and not (self.courier_name and self.tracking_id):
            raise ValueError("courier_name and tracking_id are required")
        return self


class CancelDeliveryResponse(BaseModel):
    order: OrderResponse
    courier_cancelled: bool | None = Field(
        None, description="Courier-side outcome; None when no courier call was needed"
    )


class TrackingStatusResponse(BaseModel):
    order_id: str
    courier: str
    tracking_code: str
    status: str


class RiderResponse(BaseModel):
    id: str
    name: str


# --- Courier webhook ---


class CourierWebhookPayload(BaseModel):
    test: bool = False
    event: str | None = None
    status: str | None = None
    order_id: str | int | None = None
    order_ids: list[str | int] = []

    @property
    def tracking_codes(self) -> list[str]:
        if self.order_id:
            return [str(self.order_id)]
        return [str(c) for c in self.order_ids if c]


class WebhookResult(BaseModel):
    event: str | None
    updated: list[str] = []
    skipped: list[str] = []
    unknown: list[str] = []
