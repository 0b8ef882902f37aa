from __future__ import annotations

import os
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import stripe

from services.api.app.models.gateway import (
    CheckoutLineItem,
    CheckoutSession,
    Coupon,
    PaymentIntent,
    PromotionCode,
    PromotionCodeFilter,
)
from services.api.app.services.gateway_base import GatewayNotFoundError, PaymentGatewayError

T = TypeVar("T")

RESOURCE_MISSING = "resource_missing"


@dataclass(frozen=True, slots=True)
class _StripeConfig:
    secret_key: str
    api_base: str = "https://api.stripe.com"
    api_version: str = "2023-10-16"
    timeout_seconds: float = 30
    max_network_retries: int = 0


class StripeGateway:
    """Payment gateway backed by the Stripe SDK (async methods of ``StripeClient``).

    Env vars:
    - TALLY_PAYMENT_GATEWAY=stripe
    - STRIPE_SECRET_KEY (required)
    - TALLY_STRIPE_API_BASE (default: https://api.stripe.com)
    - TALLY_STRIPE_API_VERSION (default: 2023-10-16)
    - TALLY_STRIPE_TIMEOUT_SECONDS (default: 30)
    - TALLY_STRIPE_MAX_NETWORK_RETRIES (default: 0)
    """

    name = "STRIPE"

    def __init__(self, cfg: _StripeConfig, http_client: stripe.HTTPClient | None = None) -> None:
        self._cfg = cfg
        self._client = stripe.StripeClient(
            cfg.secret_key,
            stripe_version=cfg.api_version,
            base_addresses={"api": cfg.api_base},
            max_network_retries=cfg.max_network_retries,
            http_client=http_client or stripe.HTTPXClient(timeout=cfg.timeout_seconds),
        )

    @classmethod
    def from_env(cls) -> "StripeGateway":
        secret_key = os.getenv("STRIPE_SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required when TALLY_PAYMENT_GATEWAY=stripe")

        return cls(
            _StripeConfig(
                secret_key=secret_key,
                api_base=os.getenv("TALLY_STRIPE_API_BASE", "https://api.stripe.com").rstrip("/"),
                api_version=os.getenv("TALLY_STRIPE_API_VERSION", "2023-10-16"),
                timeout_seconds=float(os.getenv("TALLY_STRIPE_TIMEOUT_SECONDS", "30")),
                max_network_retries=int(os.getenv("TALLY_STRIPE_MAX_NETWORK_RETRIES", "0")),
            )
        )

    async def get_unit_price(self, product_id: str) -> int:
        price = await self._first_price(product_id)
        if price.get("unit_amount") is None:
            raise PaymentGatewayError(f"Price {price.get('id')} has no unit_amount")
        return int(price["unit_amount"])

    async def get_price_reference(self, product_id: str) -> str:
        return str((await self._first_price(product_id))["id"])

    async def get_coupon(self, coupon_id: str, expand: Sequence[str] = ()) -> Coupon:
        params: dict[str, Any] = {"expand": list(expand)} if expand else {}
        coupon = await self._call(
            self._client.v1.coupons.retrieve_async(coupon_id, params=params),
            not_found=("coupon", coupon_id),
        )
        return _as_coupon(coupon)

    async def update_coupon_metadata(self, coupon_id: str, metadata: dict[str, str]) -> Coupon:
        coupon = await self._call(
            self._client.v1.coupons.update_async(coupon_id, params={"metadata": metadata}),
            not_found=("coupon", coupon_id),
        )
        return _as_coupon(coupon)

    async def list_coupons(self) -> list[Coupon]:
        page = await self._call(self._client.v1.coupons.list_async())
        return [_as_coupon(c) for c in page.data]

    async def get_promotion_code(self, promotion_code_id: str) -> PromotionCode:
        promo = await self._call(
            self._client.v1.promotion_codes.retrieve_async(promotion_code_id),
            not_found=("promotion_code", promotion_code_id),
        )
        return PromotionCode.model_validate(_as_dict(promo, "promotion_code"))

    async def list_promotion_codes(
        self, filters: PromotionCodeFilter | None = None
    ) -> list[PromotionCode]:
        params = filters.model_dump(exclude_none=True) if filters is not None else {}
        page = await self._call(self._client.v1.promotion_codes.list_async(params=params))
        return [PromotionCode.model_validate(_as_dict(p, "promotion_code")) for p in page.data]

    async def create_payment_intent(self, amount: int, currency: str) -> PaymentIntent:
        intent = await self._call(
            self._client.v1.payment_intents.create_async(
                params={"amount": amount, "currency": currency}
            )
        )
        return PaymentIntent.model_validate(_as_dict(intent, "payment_intent"))

    async def confirm_payment_intent(
        self, payment_intent_id: str, payment_method: str, return_url: str
    ) -> PaymentIntent:
        intent = await self._call(
            self._client.v1.payment_intents.confirm_async(
                payment_intent_id,
                params={"payment_method": payment_method, "return_url": return_url},
            ),
            not_found=("payment_intent", payment_intent_id),
        )
        return PaymentIntent.model_validate(_as_dict(intent, "payment_intent"))

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        intent = await self._call(
            self._client.v1.payment_intents.retrieve_async(payment_intent_id),
            not_found=("payment_intent", payment_intent_id),
        )
        return PaymentIntent.model_validate(_as_dict(intent, "payment_intent"))

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        discount_coupon_id: str | None,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [{"price": li.price, "quantity": li.quantity} for li in line_items],
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if discount_coupon_id:
            params["discounts"] = [{"coupon": discount_coupon_id}]

        session = await self._call(self._client.v1.checkout.sessions.create_async(params=params))
        return CheckoutSession.model_validate(_as_dict(session, "checkout.session"))

    async def _first_price(self, product_id: str) -> dict[str, Any]:
        page = await self._call(
            self._client.v1.prices.list_async(
                params={"product": product_id, "active": True, "limit": 1}
            )
        )
        if not page.data:
            raise GatewayNotFoundError("price for product", product_id)
        return _as_dict(page.data[0], "price")

    async def _call(
        self, request: Awaitable[T], not_found: tuple[str, str] | None = None
    ) -> T:
        try:
            return await request
        except stripe.InvalidRequestError as e:
            if not_found is not None and e.code == RESOURCE_MISSING:
                raise GatewayNotFoundError(*not_found) from e
            raise PaymentGatewayError(f"Stripe rejected the request: {e.user_message or e}") from e
        except stripe.StripeError as e:
            raise PaymentGatewayError(f"Stripe request failed: {e.user_message or e}") from e


def _as_dict(obj: Any, expected_object: str) -> dict[str, Any]:
    data = obj.to_dict()
    if data.get("object") != expected_object:
        raise PaymentGatewayError(
            f"Expected a Stripe {expected_object}, got {data.get('object')!r}"
        )
    return data


def _as_coupon(obj: Any) -> Coupon:
    # Only a real coupon may be validated or have its counter written.
    return Coupon.model_validate(_as_dict(obj, "coupon"))
