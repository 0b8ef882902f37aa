from __future__ import annotations

from services.api.app.services.errors import GatewayFaultError, NotFoundError
from services.api.app.services.gateway_base import GatewayNotFoundError, PaymentGateway
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)


class CatalogPriceLookup:
    """Resolves products to prices. Uncached: prices can change at the gateway."""

    def __init__(self, gateway: PaymentGateway) -> None:
        self._gateway = gateway

    async def unit_price(self, product_id: str) -> int:
        try:
            return await self._gateway.get_unit_price(product_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"No price found for product {product_id}") from e
        except Exception as e:
            logger.error(f"Error retrieving price for product ID {product_id}: {e}")
            raise GatewayFaultError("Error retrieving product price") from e

    async def price_reference(self, product_id: str) -> str:
        try:
            return await self._gateway.get_price_reference(product_id)
        except GatewayNotFoundError as e:
            raise NotFoundError(f"No price found for product {product_id}") from e
        except Exception as e:
            logger.error(f"Error retrieving price ID for product ID {product_id}: {e}")
            raise GatewayFaultError("Error retrieving price ID") from e
