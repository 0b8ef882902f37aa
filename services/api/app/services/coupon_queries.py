from __future__ import annotations

from services.api.app.models.gateway import Coupon, PromotionCode, PromotionCodeFilter
from services.api.app.services.errors import GatewayFaultError, NotFoundError
from services.api.app.services.gateway_base import (
    EXPAND_APPLIES_TO,
    GatewayNotFoundError,
    PaymentGateway,
)
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)


class CouponQueries:
    """Read-only coupon and promotion code lookups."""

    def __init__(self, gateway: PaymentGateway) -> None:
        self._gateway = gateway

    async def list_coupons(self) -> list[Coupon]:
        logger.info("Fetching all coupons")
        try:
            return await self._gateway.list_coupons()
        except Exception as e:
            logger.error(f"Failed to fetch coupons: {e}")
            raise GatewayFaultError("Error fetching coupons") from e

    async def get_coupon(self, coupon_id: str) -> Coupon:
        logger.info(f"Retrieving coupon with ID {coupon_id}")
        try:
            return await self._gateway.get_coupon(coupon_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Coupon with ID {coupon_id} not found") from e
        except Exception as e:
            logger.error(f"Error retrieving coupon with ID {coupon_id}: {e}")
            raise GatewayFaultError("Error retrieving coupon") from e

    async def get_coupon_expanded(self, coupon_id: str) -> Coupon:
        logger.info(f"Fetching coupon details for: {coupon_id}")
        try:
            return await self._gateway.get_coupon(coupon_id, expand=[EXPAND_APPLIES_TO])
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Coupon with ID {coupon_id} not found") from e
        except Exception as e:
            logger.error(f"Failed to fetch coupon details: {e}")
            raise GatewayFaultError("Error fetching coupon details") from e

    async def list_promotion_codes(
        self, filters: PromotionCodeFilter | None = None
    ) -> list[PromotionCode]:
        logger.info("Listing all promotion codes")
        try:
            return await self._gateway.list_promotion_codes(filters)
        except Exception as e:
            logger.error(f"Error listing promotion codes: {e}")
            raise GatewayFaultError("Error listing promotion codes") from e

    async def get_promotion_code(self, promotion_code_id: str) -> PromotionCode:
        logger.info(f"Retrieving promotion code with ID: {promotion_code_id}")
        try:
            return await self._gateway.get_promotion_code(promotion_code_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"Promotion code {promotion_code_id} not found") from e
        except Exception as e:
            logger.error(f"Error retrieving promotion code: {e}")
            raise GatewayFaultError("Error retrieving promotion code") from e
