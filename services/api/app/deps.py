from __future__ import annotations

from fastapi import Depends, HTTPException

from services.api.app.config import CheckoutConfig
from services.api.app.services.checkout import CheckoutOrchestrator
from services.api.app.services.coupon_queries import CouponQueries
from services.api.app.services.gateway_base import PaymentGateway
from services.api.app.services.gateway_factory import get_payment_gateway


def get_gateway() -> PaymentGateway:
    try:
        return get_payment_gateway()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


def get_checkout_config() -> CheckoutConfig:
    return CheckoutConfig.from_env()


def get_orchestrator(
    gateway: PaymentGateway = Depends(get_gateway),
    config: CheckoutConfig = Depends(get_checkout_config),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(gateway, config)


def get_coupon_queries(gateway: PaymentGateway = Depends(get_gateway)) -> CouponQueries:
    return CouponQueries(gateway)
