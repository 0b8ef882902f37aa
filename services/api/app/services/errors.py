from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_COUPON = "INVALID_COUPON"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    GATEWAY_ERROR = "GATEWAY_ERROR"


class CheckoutError(Exception):
    """Base class for classified checkout failures.

    Callers branch on ``kind`` (or the subclass), never on the message text.
    ``status_code`` below 500 means the caller sent something we reject;
    500 means we could not reach or interpret the gateway.
    """

    kind: ErrorKind = ErrorKind.GATEWAY_ERROR
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500


class NotFoundError(CheckoutError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class InvalidCouponError(CheckoutError):
    kind = ErrorKind.INVALID_COUPON
    status_code = 400


class NotApplicableError(CheckoutError):
    kind = ErrorKind.NOT_APPLICABLE
    status_code = 400


class CurrencyMismatchError(NotApplicableError):
    def __init__(self, coupon_id: str, currency: str) -> None:
        super().__init__(f"Coupon {coupon_id} cannot be used for currency {currency}")
        self.coupon_id = coupon_id
        self.currency = currency


class GatewayFaultError(CheckoutError):
    """Infrastructure failure. The message is generic; details stay in the logs."""

    kind = ErrorKind.GATEWAY_ERROR
    status_code = 500
