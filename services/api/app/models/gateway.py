"""Gateway-owned records, shaped after the Stripe objects they mirror.

Unknown fields coming back from the gateway are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CouponAppliesTo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    products: list[str] | None = None


class Coupon(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    valid: bool = True

    # Unix seconds.
    redeem_by: int | None = None
    max_redemptions: int | None = None

    # Our redemption counter lives in metadata["times_redeemed"].
    metadata: dict[str, str] = Field(default_factory=dict)

    currency: str | None = None
    amount_off: int | None = None
    percent_off: float | None = Field(default=None, ge=0, le=100)

    # Only present on an expanded fetch.
    applies_to: CouponAppliesTo | None = None


class PromotionCode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    code: str
    active: bool = True
    coupon: Coupon
    max_redemptions: int | None = None
    times_redeemed: int = 0
    expires_at: int | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class PromotionCodeFilter(BaseModel):
    active: bool | None = None
    code: str | None = None
    coupon: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)


class PaymentIntent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int
    currency: str
    status: str
    client_secret: str | None = None
    payment_method: str | None = None


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    url: str | None = None


class CheckoutLineItem(BaseModel):
    price: str
    quantity: int = Field(..., ge=1)
