from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CheckoutConfig:
    """Per-deployment checkout settings.

    Env vars:
    - TALLY_CURRENCY (default: usd)
    - TALLY_SUCCESS_URL (default: http://localhost:3000/success)
    - TALLY_CANCEL_URL (default: http://localhost:3000/cancel)
    - TALLY_RETURN_URL (default: http://localhost:3000)
    - TALLY_CONFIRM_PAYMENT_METHOD (default: pm_card_visa)

    The confirm payment method is a gateway test token. Payments are simulated:
    no card data ever reaches this service.
    """

    currency: str = "usd"
    success_url: str = "http://localhost:3000/success"
    cancel_url: str = "http://localhost:3000/cancel"
    return_url: str = "http://localhost:3000"
    confirm_payment_method: str = "pm_card_visa"

    @classmethod
    def from_env(cls) -> "CheckoutConfig":
        return cls(
            currency=os.getenv("TALLY_CURRENCY", "usd").strip().lower(),
            success_url=os.getenv("TALLY_SUCCESS_URL", "http://localhost:3000/success"),
            cancel_url=os.getenv("TALLY_CANCEL_URL", "http://localhost:3000/cancel"),
            return_url=os.getenv("TALLY_RETURN_URL", "http://localhost:3000"),
            confirm_payment_method=os.getenv("TALLY_CONFIRM_PAYMENT_METHOD", "pm_card_visa").strip(),
        )
