from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from services.api.app.services.errors import CheckoutError
from services.api.app.utils.logger import get_logger

logger = get_logger(__name__)


def raise_checkout_http_error(e: Exception) -> NoReturn:
    if isinstance(e, CheckoutError):
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    logger.error(f"Unhandled checkout failure: {e!r}")
    raise HTTPException(status_code=500, detail="Internal Server Error") from e
