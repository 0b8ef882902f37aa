from __future__ import annotations

import asyncio
import time
import weakref
from collections.abc import Callable
from decimal import ROUND_FLOOR, Decimal

from services.api.app.models.gateway import Coupon
from services.api.app.services.errors import (
    CheckoutError,
    GatewayFaultError,
    InvalidCouponError,
    NotApplicableError,
    NotFoundError,
)
from services.api.app.services.gateway_base import (
    EXPAND_APPLIES_TO,
    GatewayNotFoundError,
    PaymentGateway,
)
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)

TIMES_REDEEMED_KEY = "times_redeemed"


class RedemptionLocks:
    """One asyncio.Lock per coupon id, dropped once nobody holds it.

    This serializes read-modify-write increments inside one process. The gateway
    counter has no compare-and-swap, so two processes can still under-count.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, coupon_id: str) -> asyncio.Lock:
        lock = self._locks.get(coupon_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[coupon_id] = lock
        return lock


redemption_locks = RedemptionLocks()


def redemption_count(coupon: Coupon) -> int:
    raw = coupon.metadata.get(TIMES_REDEEMED_KEY)
    if raw is None or raw.strip() == "":
        return 0
    return int(raw)


def currency_matches(coupon: Coupon, currency: str) -> bool:
    return not coupon.currency or coupon.currency.lower() == currency.lower()


def apply_discount(item_total: int, coupon: Coupon) -> int:
    """Discounted line total in minor units, never below zero.

    Amount-off wins over percent-off; the percent discount is floored.
    """

    if coupon.amount_off is not None:
        return max(0, item_total - coupon.amount_off)

    if coupon.percent_off is not None:
        percent = Decimal(str(coupon.percent_off))
        discount = (Decimal(item_total) * percent / 100).to_integral_value(rounding=ROUND_FLOOR)
        return max(0, item_total - int(discount))

    return item_total


class CouponValidator:
    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        locks: RedemptionLocks | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self._locks = locks or redemption_locks
        self._clock = clock

    currency_matches = staticmethod(currency_matches)
    apply_discount = staticmethod(apply_discount)

    async def fetch(self, coupon_id: str) -> Coupon:
        try:
            return await self._gateway.get_coupon(coupon_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Coupon with ID {coupon_id} not found") from e
        except Exception as e:
            logger.error(f"Error retrieving coupon with ID {coupon_id}: {e}")
            raise GatewayFaultError("Error retrieving coupon") from e

    async def check_general_validity(self, coupon_id: str) -> bool:
        """Reject inactive, expired and fully redeemed coupons."""

        try:
            coupon = await self._gateway.get_coupon(coupon_id)
            now = int(self._clock())

            if not coupon.valid:
                raise InvalidCouponError(f"Coupon with ID {coupon_id} is not valid")

            if coupon.redeem_by is not None and coupon.redeem_by < now:
                raise InvalidCouponError(f"Coupon with ID {coupon_id} has expired")

            limit = coupon.max_redemptions
            if limit is not None and redemption_count(coupon) >= limit:
                raise InvalidCouponError(
                    f"Coupon with ID {coupon_id} has reached its maximum redemption limit"
                )

            return True
        except CheckoutError:
            raise
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Coupon with ID {coupon_id} not found") from e
        except Exception as e:
            logger.error(f"Error validating coupon with ID {coupon_id}: {e}")
            raise GatewayFaultError("Error validating coupon") from e

    async def check_applies_to_product(self, coupon_id: str, product_id: str) -> bool:
        # Separate expanded fetch: applicability is per product, validity is per checkout.
        try:
            details = await self._gateway.get_coupon(coupon_id, expand=[EXPAND_APPLIES_TO])

            if details.applies_to is None or details.applies_to.products is None:
                return True

            if product_id not in details.applies_to.products:
                raise NotApplicableError(
                    f"Coupon with ID {coupon_id} does not apply to product with ID {product_id}"
                )

            return True
        except CheckoutError:
            raise
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Coupon with ID {coupon_id} not found") from e
        except Exception as e:
            logger.error(f"Error fetching coupon details for {coupon_id}: {e}")
            raise GatewayFaultError("Error validating coupon applicability") from e

    async def increment_redemption(self, coupon_id: str) -> int:
        async with self._locks.lock_for(coupon_id):
            try:
                coupon = await self._gateway.get_coupon(coupon_id)
                times_redeemed = redemption_count(coupon) + 1

                await self._gateway.update_coupon_metadata(
                    coupon_id, {TIMES_REDEEMED_KEY: str(times_redeemed)}
                )
            except Exception as e:
                logger.error(f"Error incrementing redemption count for coupon {coupon_id}: {e}")
                raise GatewayFaultError("Error incrementing coupon redemption") from e

        logger.info(f"Incremented redemption count for coupon: {coupon_id} to {times_redeemed}")
        return times_redeemed
