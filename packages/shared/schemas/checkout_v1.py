"""Shared checkout result schema (v1).

Clients branch on ``kind``: a payment intent is confirmed in place with its client
secret, a checkout session is completed by redirecting to ``url``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class CheckoutKindV1(str, Enum):
    PAYMENT_INTENT = "paymentIntent"
    CHECKOUT_SESSION = "checkoutSession"


class PaymentIntentResultV1(BaseModel):
    kind: Literal[CheckoutKindV1.PAYMENT_INTENT] = CheckoutKindV1.PAYMENT_INTENT
    id: str
    client_secret: str | None = None
    amount: int


class CheckoutSessionResultV1(BaseModel):
    kind: Literal[CheckoutKindV1.CHECKOUT_SESSION] = CheckoutKindV1.CHECKOUT_SESSION
    id: str
    url: str | None = None


CheckoutResultV1 = Annotated[
    Union[PaymentIntentResultV1, CheckoutSessionResultV1],
    Field(discriminator="kind"),
]
