from __future__ import annotations

import asyncio

import pytest

from services.api.app.models.gateway import Coupon, CouponAppliesTo
from services.api.app.services.coupon_validator import (
    CouponValidator,
    RedemptionLocks,
    apply_discount,
    currency_matches,
    redemption_count,
)
from services.api.app.services.errors import (
    GatewayFaultError,
    InvalidCouponError,
    NotApplicableError,
    NotFoundError,
)
from services.api.app.services.gateway_base import PaymentGatewayError
from services.api.app.services.gateway_mock import MockPaymentGateway


@pytest.fixture
def validator(gateway: MockPaymentGateway) -> CouponValidator:
    return CouponValidator(gateway, locks=RedemptionLocks())


@pytest.mark.parametrize(
    ("item_total", "amount_off", "expected"),
    [(1000, 300, 700), (1000, 1000, 0), (200, 300, 0), (0, 50, 0)],
)
def test_amount_off_is_floored_at_zero(item_total: int, amount_off: int, expected: int) -> None:
    coupon = Coupon(id="c", amount_off=amount_off)
    assert apply_discount(item_total, coupon) == expected


@pytest.mark.parametrize(
    ("item_total", "percent_off", "expected"),
    [(1000, 100, 0), (1000, 50, 500), (999, 10, 900), (333, 33.3, 223), (1, 99, 1), (1000, 0, 1000)],
)
def test_percent_off_floors_the_discount(item_total: int, percent_off: float, expected: int) -> None:
    coupon = Coupon(id="c", percent_off=percent_off)
    assert apply_discount(item_total, coupon) == expected


def test_amount_off_checked_before_percent_off() -> None:
    coupon = Coupon(id="c", amount_off=100, percent_off=50)
    assert apply_discount(1000, coupon) == 900


def test_coupon_without_discount_leaves_total_unchanged() -> None:
    assert apply_discount(1234, Coupon(id="c")) == 1234


def test_currency_matches() -> None:
    assert currency_matches(Coupon(id="c"), "usd")
    assert currency_matches(Coupon(id="c", currency="usd"), "usd")
    assert currency_matches(Coupon(id="c", currency="USD"), "usd")
    assert not currency_matches(Coupon(id="c", currency="eur"), "usd")


def test_redemption_count_defaults_to_zero() -> None:
    assert redemption_count(Coupon(id="c")) == 0
    assert redemption_count(Coupon(id="c", metadata={"times_redeemed": ""})) == 0
    assert redemption_count(Coupon(id="c", metadata={"times_redeemed": "7"})) == 7


@pytest.mark.asyncio
async def test_general_validity_accepts_good_coupons(validator: CouponValidator) -> None:
    assert await validator.check_general_validity("TENPCT") is True
    assert await validator.check_general_validity("FUTURE") is True
    assert await validator.check_general_validity("CAPPED") is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("coupon_id", "message"),
    [
        ("INACTIVE", "is not valid"),
        ("EXPIRED", "has expired"),
        ("LIMITED", "maximum redemption limit"),
    ],
)
async def test_general_validity_rejects(
    validator: CouponValidator, coupon_id: str, message: str
) -> None:
    with pytest.raises(InvalidCouponError, match=message):
        await validator.check_general_validity(coupon_id)


@pytest.mark.asyncio
async def test_general_validity_missing_coupon_is_not_found(validator: CouponValidator) -> None:
    with pytest.raises(NotFoundError):
        await validator.check_general_validity("NOPE")


@pytest.mark.asyncio
async def test_general_validity_unreadable_counter_is_a_fault(validator: CouponValidator) -> None:
    with pytest.raises(GatewayFaultError) as exc_info:
        await validator.check_general_validity("BADMETA")
    assert exc_info.value.message == "Error validating coupon"
    assert not exc_info.value.is_client_error


@pytest.mark.asyncio
async def test_general_validity_uses_injected_clock(gateway: MockPaymentGateway) -> None:
    gateway.add_coupon(Coupon(id="EOY", percent_off=5, redeem_by=1_000))

    before = CouponValidator(gateway, clock=lambda: 999)
    after = CouponValidator(gateway, clock=lambda: 1_001)

    assert await before.check_general_validity("EOY") is True
    with pytest.raises(InvalidCouponError):
        await after.check_general_validity("EOY")


@pytest.mark.asyncio
async def test_applies_to_product(validator: CouponValidator, gateway: MockPaymentGateway) -> None:
    assert await validator.check_applies_to_product("AMOUNT300", "P1") is True
    assert await validator.check_applies_to_product("TENPCT", "P3") is True

    with pytest.raises(NotApplicableError, match="does not apply to product with ID P3"):
        await validator.check_applies_to_product("AMOUNT300", "P3")

    assert ("get_coupon", "AMOUNT300", "applies_to") in gateway.calls


@pytest.mark.asyncio
async def test_increment_redemption_adds_exactly_one(
    validator: CouponValidator, gateway: MockPaymentGateway
) -> None:
    assert await validator.increment_redemption("TENPCT") == 1
    assert await validator.increment_redemption("TENPCT") == 2

    coupon = await gateway.get_coupon("TENPCT")
    assert coupon.metadata["times_redeemed"] == "2"


@pytest.mark.asyncio
async def test_concurrent_increments_are_serialized(
    validator: CouponValidator, gateway: MockPaymentGateway
) -> None:
    await asyncio.gather(*(validator.increment_redemption("CAPPED") for _ in range(10)))

    coupon = await gateway.get_coupon("CAPPED")
    assert redemption_count(coupon) == 10


@pytest.mark.asyncio
async def test_increment_failure_is_a_fault(
    validator: CouponValidator, gateway: MockPaymentGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _boom(coupon_id: str, metadata: dict[str, str]) -> Coupon:
        raise PaymentGatewayError("write rejected")

    monkeypatch.setattr(gateway, "update_coupon_metadata", _boom)

    with pytest.raises(GatewayFaultError, match="Error incrementing coupon redemption"):
        await validator.increment_redemption("TENPCT")


@pytest.mark.asyncio
async def test_empty_product_list_applies_to_nothing(
    validator: CouponValidator, gateway: MockPaymentGateway
) -> None:
    gateway.add_coupon(Coupon(id="NOBODY", percent_off=10, applies_to=CouponAppliesTo(products=[])))

    for product_id in ("P1", "P2", "P3"):
        with pytest.raises(NotApplicableError):
            await validator.check_applies_to_product("NOBODY", product_id)
