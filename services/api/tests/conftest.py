"""Shared fixtures: a small, deterministic mock gateway."""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from services.api.app.config import CheckoutConfig
from services.api.app.models.gateway import Coupon, CouponAppliesTo
from services.api.app.services.checkout import CheckoutOrchestrator
from services.api.app.services.coupon_validator import RedemptionLocks
from services.api.app.services.gateway_mock import MockPaymentGateway


@pytest.fixture
def gateway() -> MockPaymentGateway:
    gw = MockPaymentGateway(seed=False)

    gw.add_product("P1", 500)
    gw.add_product("P2", 1000)
    gw.add_product("P3", 250)

    now = int(time.time())
    for coupon in (
        Coupon(
            id="AMOUNT300",
            currency="usd",
            amount_off=300,
            applies_to=CouponAppliesTo(products=["P1"]),
        ),
        Coupon(id="FULL", percent_off=100),
        Coupon(id="TENPCT", percent_off=10),
        Coupon(id="ONLY_P2", percent_off=10, applies_to=CouponAppliesTo(products=["P2"])),
        Coupon(id="EUR5", currency="eur", amount_off=500),
        Coupon(id="LIMITED", percent_off=20, max_redemptions=1, metadata={"times_redeemed": "1"}),
        Coupon(id="CAPPED", percent_off=20, max_redemptions=3),
        Coupon(id="EXPIRED", percent_off=20, redeem_by=now - 3600),
        Coupon(id="FUTURE", percent_off=20, redeem_by=now + 3600),
        Coupon(id="INACTIVE", percent_off=20, valid=False),
        Coupon(id="BADMETA", percent_off=5, max_redemptions=10, metadata={"times_redeemed": "many"}),
    ):
        gw.add_coupon(coupon)

    gw.add_promotion_code("promo_1", "SAVE300", "AMOUNT300")
    gw.add_promotion_code("promo_2", "FREE", "FULL", active=False)
    return gw


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig()


@pytest.fixture
def orchestrator(gateway: MockPaymentGateway, config: CheckoutConfig) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(gateway, config, locks=RedemptionLocks())


@pytest.fixture
def client(gateway: MockPaymentGateway, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("TALLY_PAYMENT_GATEWAY", "mock")

    from services.api.app import deps
    from services.api.app.main import app

    monkeypatch.setattr(deps, "get_payment_gateway", lambda: gateway)

    with TestClient(app) as c:
        yield c
