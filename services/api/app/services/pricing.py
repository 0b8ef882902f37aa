from __future__ import annotations

from collections.abc import Iterable

from services.api.app.models.checkout import CartItem
from services.api.app.models.gateway import Coupon
from services.api.app.services.catalog import CatalogPriceLookup
from services.api.app.services.coupon_validator import CouponValidator
from services.api.app.services.errors import CurrencyMismatchError


class PricingCalculator:
    def __init__(
        self,
        catalog: CatalogPriceLookup,
        validator: CouponValidator,
        *,
        currency: str = "usd",
    ) -> None:
        self._catalog = catalog
        self._validator = validator
        self._currency = currency

    async def compute_total(self, cart: Iterable[CartItem], coupon_id: str | None = None) -> int:
        """Total payable in minor units.

        Coupon validity is checked once for the whole cart. Currency and product
        applicability are checked per item, in cart order, and the first failing
        item aborts the computation.
        """

        coupon: Coupon | None = None
        if coupon_id:
            await self._validator.check_general_validity(coupon_id)
            coupon = await self._validator.fetch(coupon_id)

        total = 0
        for item in cart:
            unit_price = await self._catalog.unit_price(item.product_id)
            item_total = unit_price * item.quantity

            if coupon is not None:
                if not self._validator.currency_matches(coupon, self._currency):
                    raise CurrencyMismatchError(coupon.id, self._currency)
                await self._validator.check_applies_to_product(coupon.id, item.product_id)
                item_total = self._validator.apply_discount(item_total, coupon)

            total += item_total

        return total
