from __future__ import annotations

from fastapi import APIRouter, Depends

from packages.shared.schemas.checkout_v1 import CheckoutResultV1
from services.api.app.deps import get_orchestrator
from services.api.app.models.checkout import CheckoutRequest
from services.api.app.routers.http_errors import raise_checkout_http_error
from services.api.app.services.checkout import CheckoutOrchestrator

router = APIRouter()


@router.post("/v1/checkout", response_model=CheckoutResultV1)
async def checkout(
    payload: CheckoutRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> CheckoutResultV1:
    try:
        return await orchestrator.checkout(payload.cart, payload.coupon_id)
    except Exception as e:
        raise_checkout_http_error(e)
