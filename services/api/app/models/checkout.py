from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CartItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: str = Field(..., min_length=1, alias="productId")
    quantity: int = Field(..., ge=1)


Cart = list[CartItem]


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cart: list[CartItem] = Field(..., min_length=1)
    coupon_id: str | None = Field(default=None, alias="couponId")


class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coupon_id: str | None = Field(default=None, alias="couponId")

    # Test token override; defaults to TALLY_CONFIRM_PAYMENT_METHOD.
    payment_method: str | None = Field(default=None, alias="paymentMethod")
