from __future__ import annotations

import os

from services.api.app.services.gateway_base import PaymentGateway
from services.api.app.services.gateway_mock import MockPaymentGateway

_MOCK_GATEWAY: MockPaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    """Select a gateway based on env vars.

    Defaults to the mock gateway so tests and local dev never touch a real account.
    The mock is shared by the whole process so coupon counters and payment intents
    survive between requests, the way they would in the real gateway.
    """

    global _MOCK_GATEWAY

    mode = os.getenv("TALLY_PAYMENT_GATEWAY", "mock").strip().lower()

    if mode == "mock":
        if _MOCK_GATEWAY is None:
            _MOCK_GATEWAY = MockPaymentGateway()
        return _MOCK_GATEWAY

    if mode == "stripe":
        from services.api.app.services.gateway_stripe import StripeGateway

        return StripeGateway.from_env()

    raise ValueError(f"Unknown TALLY_PAYMENT_GATEWAY={mode!r}. Expected mock or stripe.")


def reset_mock_gateway() -> None:
    global _MOCK_GATEWAY
    _MOCK_GATEWAY = None
