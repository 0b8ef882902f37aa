"""Tally checkout service entrypoint.

Run locally:
    python -m services.api.app.main
or
    uvicorn services.api.app.main:app --reload --port 8000
"""

import os

from fastapi import FastAPI

from services.api.app.routers.checkout import router as checkout_router
from services.api.app.routers.coupons import router as coupons_router
from services.api.app.routers.payments import router as payments_router
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(title="Tally Checkout API")

app.include_router(checkout_router)
app.include_router(coupons_router)
app.include_router(payments_router)


@app.on_event("startup")
def _startup() -> None:
    logger.info("Checkout service started")


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("TALLY_HOST", "0.0.0.0"),
        port=int(os.getenv("TALLY_PORT", "8000")),
    )
