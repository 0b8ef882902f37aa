from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from services.api.app.models.gateway import (
    CheckoutLineItem,
    CheckoutSession,
    Coupon,
    PaymentIntent,
    PromotionCode,
    PromotionCodeFilter,
)

EXPAND_APPLIES_TO = "applies_to"


class PaymentGatewayError(Exception):
    """Base class for payment gateway errors."""


class GatewayNotFoundError(PaymentGatewayError):
    def __init__(self, object_type: str, object_id: str) -> None:
        super().__init__(f"No such {object_type}: {object_id!r}")
        self.object_type = object_type
        self.object_id = object_id


class PaymentGateway(Protocol):
    """Capabilities the checkout engine consumes.

    Implementations hold no per-request state. Every call is a round-trip to the
    gateway, which is the source of truth for prices and coupons.
    """

    name: str

    async def get_unit_price(self, product_id: str) -> int: ...

    async def get_price_reference(self, product_id: str) -> str: ...

    async def get_coupon(self, coupon_id: str, expand: Sequence[str] = ()) -> Coupon: ...

    async def update_coupon_metadata(self, coupon_id: str, metadata: dict[str, str]) -> Coupon: ...

    async def list_coupons(self) -> list[Coupon]: ...

    async def get_promotion_code(self, promotion_code_id: str) -> PromotionCode: ...

    async def list_promotion_codes(
        self, filters: PromotionCodeFilter | None = None
    ) -> list[PromotionCode]: ...

    async def create_payment_intent(self, amount: int, currency: str) -> PaymentIntent: ...

    async def confirm_payment_intent(
        self, payment_intent_id: str, payment_method: str, return_url: str
    ) -> PaymentIntent: ...

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent: ...

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        discount_coupon_id: str | None,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession: ...
