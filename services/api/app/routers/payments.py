from __future__ import annotations

from fastapi import APIRouter, Depends

from services.api.app.deps import get_orchestrator
from services.api.app.models.checkout import ConfirmPaymentRequest
from services.api.app.models.gateway import PaymentIntent
from services.api.app.routers.http_errors import raise_checkout_http_error
from services.api.app.services.checkout import CheckoutOrchestrator

router = APIRouter()


@router.post("/v1/payments/{payment_intent_id}/confirm", response_model=PaymentIntent)
async def confirm_payment(
    payment_intent_id: str,
    payload: ConfirmPaymentRequest | None = None,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentIntent:
    payload = payload or ConfirmPaymentRequest()
    try:
        return await orchestrator.confirm_payment(
            payment_intent_id,
            coupon_id=payload.coupon_id,
            payment_method=payload.payment_method,
        )
    except Exception as e:
        raise_checkout_http_error(e)


@router.get("/v1/payments/{payment_intent_id}", response_model=PaymentIntent)
async def check_payment_status(
    payment_intent_id: str,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentIntent:
    try:
        return await orchestrator.check_status(payment_intent_id)
    except Exception as e:
        raise_checkout_http_error(e)
