from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class VerifyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    cart_total: int = Field(..., ge=0, description="Cart subtotal in paisa")


class VerifyCouponResponse(BaseModel):
    success: bool = True
    code: str
    discount_amount: int


class CouponUpsertRequest(BaseModel):
    code: str = Field(..., min_length=3, max_length=64)
    type: Literal["PERCENTAGE", "FIXED"]
    value: int = Field(..., gt=0)
    max_discount: int | None = Field(None, gt=0)
    min_order: int | None = Field(None, gt=0)
    start_date: datetime | None = None
    expires_at: datetime | None = None
    usage_limit: int | None = Field(None, gt=0)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def code_is_token(cls, v: str) -> str:
        v = v.strip().upper()
        if " " in v:
            raise ValueError("code must not contain whitespace")
        return v

    @model_validator(mode="after")
    def percentage_in_range(self) -> "CouponUpsertRequest":
        if self.type == "PERCENTAGE" and self.value > 100:
            raise ValueError("percentage value must be between 1 and 100")
        return self


class CouponResponse(BaseModel):
    id: str
    code: str
    type: str
    value: int
    max_discount: int | None
    min_order: int | None
    start_date: datetime | None
    expires_at: datetime | None
    usage_limit: int | None
    used_count: int
    is_active: bool
