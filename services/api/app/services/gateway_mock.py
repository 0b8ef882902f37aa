from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from services.api.app.models.gateway import (
    CheckoutLineItem,
    CheckoutSession,
    Coupon,
    CouponAppliesTo,
    PaymentIntent,
    PromotionCode,
    PromotionCodeFilter,
)
from services.api.app.services.gateway_base import (
    EXPAND_APPLIES_TO,
    GatewayNotFoundError,
    PaymentGatewayError,
)

# Test payment method tokens and the status a confirmation ends in.
_CONFIRM_OUTCOMES = {
    "pm_card_visa": "succeeded",
    "pm_card_mastercard": "succeeded",
    "pm_card_chargeDeclined": "requires_payment_method",
    "pm_card_authenticationRequired": "requires_action",
}

_CONFIRMABLE = {"requires_payment_method", "requires_confirmation", "requires_action"}


@dataclass(slots=True)
class _Price:
    id: str
    product_id: str
    unit_amount: int


class MockPaymentGateway:
    """In-memory gateway that behaves like Stripe where the engine can tell.

    - coupons only carry ``applies_to`` when fetched with that expansion
    - zero-amount payment intents are rejected
    - confirmation outcome is driven by the test payment method token
    - every call yields to the event loop, so concurrent requests interleave

    ``calls`` records each gateway call for inspection in tests and demos.
    """

    name = "MOCK"

    def __init__(self, *, seed: bool = True) -> None:
        self._prices: dict[str, _Price] = {}
        self._coupons: dict[str, Coupon] = {}
        self._promotion_codes: dict[str, PromotionCode] = {}
        self._payment_intents: dict[str, PaymentIntent] = {}
        self._sessions: dict[str, CheckoutSession] = {}
        self.calls: list[tuple[str, ...]] = []

        if seed:
            _seed(self)

    # Seed helpers
    def add_product(self, product_id: str, unit_amount: int) -> str:
        price_id = f"price_{product_id}"
        self._prices[product_id] = _Price(id=price_id, product_id=product_id, unit_amount=unit_amount)
        return price_id

    def add_coupon(self, coupon: Coupon) -> None:
        self._coupons[coupon.id] = coupon.model_copy(deep=True)

    def add_promotion_code(self, promotion_code_id: str, code: str, coupon_id: str, **fields) -> None:
        coupon = self._coupons[coupon_id]
        self._promotion_codes[promotion_code_id] = PromotionCode(
            id=promotion_code_id,
            code=code,
            coupon=coupon.model_copy(update={"applies_to": None}, deep=True),
            **fields,
        )

    def set_payment_intent_status(self, payment_intent_id: str, status: str) -> None:
        intent = self._payment_intents[payment_intent_id]
        self._payment_intents[payment_intent_id] = intent.model_copy(update={"status": status})

    # PaymentGateway
    async def get_unit_price(self, product_id: str) -> int:
        return (await self._price(product_id, "get_unit_price")).unit_amount

    async def get_price_reference(self, product_id: str) -> str:
        return (await self._price(product_id, "get_price_reference")).id

    async def get_coupon(self, coupon_id: str, expand: Sequence[str] = ()) -> Coupon:
        await self._touch("get_coupon", coupon_id, *expand)
        coupon = self._coupons.get(coupon_id)
        if coupon is None:
            raise GatewayNotFoundError("coupon", coupon_id)
        if EXPAND_APPLIES_TO in expand:
            return coupon.model_copy(deep=True)
        return coupon.model_copy(update={"applies_to": None}, deep=True)

    async def update_coupon_metadata(self, coupon_id: str, metadata: dict[str, str]) -> Coupon:
        await self._touch("update_coupon_metadata", coupon_id)
        coupon = self._coupons.get(coupon_id)
        if coupon is None:
            raise GatewayNotFoundError("coupon", coupon_id)
        merged = {**coupon.metadata, **metadata}
        self._coupons[coupon_id] = coupon.model_copy(update={"metadata": merged})
        return self._coupons[coupon_id].model_copy(update={"applies_to": None}, deep=True)

    async def list_coupons(self) -> list[Coupon]:
        await self._touch("list_coupons")
        return [c.model_copy(update={"applies_to": None}, deep=True) for c in self._coupons.values()]

    async def get_promotion_code(self, promotion_code_id: str) -> PromotionCode:
        await self._touch("get_promotion_code", promotion_code_id)
        promo = self._promotion_codes.get(promotion_code_id)
        if promo is None:
            raise GatewayNotFoundError("promotion_code", promotion_code_id)
        return promo.model_copy(deep=True)

    async def list_promotion_codes(
        self, filters: PromotionCodeFilter | None = None
    ) -> list[PromotionCode]:
        await self._touch("list_promotion_codes")
        filters = filters or PromotionCodeFilter()

        out: list[PromotionCode] = []
        for promo in self._promotion_codes.values():
            if filters.active is not None and promo.active != filters.active:
                continue
            if filters.code is not None and promo.code.lower() != filters.code.lower():
                continue
            if filters.coupon is not None and promo.coupon.id != filters.coupon:
                continue
            out.append(promo.model_copy(deep=True))

        if filters.limit is not None:
            out = out[: filters.limit]
        return out

    async def create_payment_intent(self, amount: int, currency: str) -> PaymentIntent:
        await self._touch("create_payment_intent", str(amount), currency)
        if amount < 1:
            raise PaymentGatewayError("Amount must be at least 1 in the smallest currency unit")

        intent_id = f"pi_{uuid4().hex[:24]}"
        intent = PaymentIntent(
            id=intent_id,
            amount=amount,
            currency=currency,
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret_{uuid4().hex[:16]}",
        )
        self._payment_intents[intent_id] = intent
        return intent.model_copy()

    async def confirm_payment_intent(
        self, payment_intent_id: str, payment_method: str, return_url: str
    ) -> PaymentIntent:
        del return_url
        await self._touch("confirm_payment_intent", payment_intent_id, payment_method)

        intent = self._payment_intents.get(payment_intent_id)
        if intent is None:
            raise GatewayNotFoundError("payment_intent", payment_intent_id)
        if intent.status not in _CONFIRMABLE:
            raise PaymentGatewayError(
                f"PaymentIntent {payment_intent_id} cannot be confirmed in status {intent.status}"
            )

        status = _CONFIRM_OUTCOMES.get(payment_method)
        if status is None:
            raise PaymentGatewayError(f"No such PaymentMethod: {payment_method!r}")

        confirmed = intent.model_copy(update={"status": status, "payment_method": payment_method})
        self._payment_intents[payment_intent_id] = confirmed
        return confirmed.model_copy()

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        await self._touch("retrieve_payment_intent", payment_intent_id)
        intent = self._payment_intents.get(payment_intent_id)
        if intent is None:
            raise GatewayNotFoundError("payment_intent", payment_intent_id)
        return intent.model_copy()

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        discount_coupon_id: str | None,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        del success_url, cancel_url
        await self._touch("create_checkout_session", *(li.price for li in line_items))

        known_prices = {p.id for p in self._prices.values()}
        for li in line_items:
            if li.price not in known_prices:
                raise GatewayNotFoundError("price", li.price)
        if discount_coupon_id is not None and discount_coupon_id not in self._coupons:
            raise GatewayNotFoundError("coupon", discount_coupon_id)

        session_id = f"cs_test_{uuid4().hex[:24]}"
        session = CheckoutSession(id=session_id, url=f"https://checkout.mock.local/pay/{session_id}")
        self._sessions[session_id] = session
        return session.model_copy()

    async def _price(self, product_id: str, op: str) -> _Price:
        await self._touch(op, product_id)
        price = self._prices.get(product_id)
        if price is None:
            raise GatewayNotFoundError("price for product", product_id)
        return price

    async def _touch(self, *call: str) -> None:
        self.calls.append(call)
        await asyncio.sleep(0)


def _seed(gateway: MockPaymentGateway) -> None:
    gateway.add_product("prod_tshirt", 2500)
    gateway.add_product("prod_mug", 1200)
    gateway.add_product("prod_sticker", 300)

    past = int((datetime.now(timezone.utc) - timedelta(days=30)).timestamp())

    for coupon in (
        Coupon(id="TENOFF", name="$10 off", currency="usd", amount_off=1000),
        Coupon(id="HALFOFF", name="50% off", percent_off=50),
        Coupon(
            id="FREEMUG",
            name="Free mug",
            percent_off=100,
            applies_to=CouponAppliesTo(products=["prod_mug"]),
        ),
        Coupon(id="EUROFF", name="5 EUR off", currency="eur", amount_off=500),
        Coupon(id="EXPIRED", name="Last season", percent_off=20, redeem_by=past),
        Coupon(
            id="ONETIME",
            name="One per store",
            percent_off=15,
            max_redemptions=1,
            metadata={"times_redeemed": "1"},
        ),
        Coupon(id="RETIRED", name="Retired", percent_off=10, valid=False),
    ):
        gateway.add_coupon(coupon)

    gateway.add_promotion_code("promo_welcome", "WELCOME10", "TENOFF")
    gateway.add_promotion_code("promo_half", "HALF", "HALFOFF", max_redemptions=100)
    gateway.add_promotion_code("promo_mug", "MUGONUS", "FREEMUG", active=False)
