from __future__ import annotations

from packages.shared.schemas.checkout_v1 import (
    CheckoutResultV1,
    CheckoutSessionResultV1,
    PaymentIntentResultV1,
)
from services.api.app.config import CheckoutConfig
from services.api.app.models.checkout import CartItem
from services.api.app.models.gateway import CheckoutLineItem, PaymentIntent
from services.api.app.services.catalog import CatalogPriceLookup
from services.api.app.services.coupon_validator import CouponValidator, RedemptionLocks
from services.api.app.services.errors import GatewayFaultError, NotFoundError
from services.api.app.services.gateway_base import GatewayNotFoundError, PaymentGateway
from services.api.app.services.pricing import PricingCalculator
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)

SUCCEEDED = "succeeded"


class CheckoutOrchestrator:
    """Chooses the payment flow for a cart and settles coupon usage afterwards.

    A fully discounted cart cannot be charged directly (gateways reject zero-amount
    charges), so it goes through a hosted checkout session that redeems the coupon
    natively. Everything else becomes a payment intent for the computed total.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        config: CheckoutConfig,
        *,
        locks: RedemptionLocks | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config
        self.catalog = CatalogPriceLookup(gateway)
        self.validator = CouponValidator(gateway, locks=locks)
        self.pricing = PricingCalculator(self.catalog, self.validator, currency=config.currency)

    async def checkout(
        self, cart: list[CartItem], coupon_id: str | None = None
    ) -> CheckoutResultV1:
        total = await self.pricing.compute_total(cart, coupon_id)

        if total == 0 and coupon_id:
            return await self._create_discount_session(cart, coupon_id)

        intent = await self._create_payment_intent(total)
        return PaymentIntentResultV1(id=intent.id, client_secret=intent.client_secret, amount=total)

    async def confirm_payment(
        self,
        payment_intent_id: str,
        coupon_id: str | None = None,
        payment_method: str | None = None,
    ) -> PaymentIntent:
        # Simulated confirmation with a gateway test token; no card data is accepted here.
        method = payment_method or self._config.confirm_payment_method
        logger.info(f"Simulating payment confirmation for PaymentIntent: {payment_intent_id}")

        try:
            intent = await self._gateway.confirm_payment_intent(
                payment_intent_id, method, self._config.return_url
            )
        except GatewayNotFoundError as e:
            raise NotFoundError(f"PaymentIntent {payment_intent_id} not found") from e
        except Exception as e:
            logger.error(f"Error confirming PaymentIntent {payment_intent_id}: {e}")
            raise GatewayFaultError("Error confirming PaymentIntent") from e

        logger.info(f"PaymentIntent confirmed: {intent.id} status={intent.status}")

        if intent.status == SUCCEEDED and coupon_id:
            await self.validator.increment_redemption(coupon_id)

        return intent

    async def check_status(self, payment_intent_id: str) -> PaymentIntent:
        logger.info(f"Checking status for PaymentIntent: {payment_intent_id}")
        try:
            intent = await self._gateway.retrieve_payment_intent(payment_intent_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"PaymentIntent {payment_intent_id} not found") from e
        except Exception as e:
            logger.error(f"Error checking PaymentIntent status: {e}")
            raise GatewayFaultError("Error checking PaymentIntent status") from e

        logger.info(f"PaymentIntent status: {intent.status}")
        return intent

    async def _create_payment_intent(self, amount: int) -> PaymentIntent:
        logger.info("Creating payment intent")
        try:
            intent = await self._gateway.create_payment_intent(amount, self._config.currency)
        except Exception as e:
            logger.error(f"Error creating PaymentIntent: {e}")
            raise GatewayFaultError("Error creating PaymentIntent") from e

        logger.info(f"PaymentIntent created: {intent.id}")
        return intent

    async def _create_discount_session(
        self, cart: list[CartItem], coupon_id: str
    ) -> CheckoutSessionResultV1:
        line_items = [
            CheckoutLineItem(
                price=await self.catalog.price_reference(item.product_id),
                quantity=item.quantity,
            )
            for item in cart
        ]

        try:
            session = await self._gateway.create_checkout_session(
                line_items,
                coupon_id,
                self._config.success_url,
                self._config.cancel_url,
            )
        except Exception as e:
            logger.error(f"Error creating CheckoutSession with discount: {e}")
            raise GatewayFaultError("Error creating CheckoutSession with discount") from e

        logger.info(f"CheckoutSession with discount created: {session.id}")
        return CheckoutSessionResultV1(id=session.id, url=session.url)
