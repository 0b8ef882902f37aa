from __future__ import annotations

import json
from collections.abc import Callable
from urllib.parse import parse_qs, urlsplit

import pytest
import stripe

from services.api.app.models.gateway import CheckoutLineItem, PromotionCodeFilter
from services.api.app.services.coupon_validator import CouponValidator, RedemptionLocks
from services.api.app.services.errors import GatewayFaultError
from services.api.app.services.gateway_base import GatewayNotFoundError, PaymentGatewayError
from services.api.app.services.gateway_stripe import StripeGateway, _StripeConfig

Handler = Callable[[str, str], tuple[int, dict]]


class _RecordingHTTPClient(stripe.HTTPClient):
    """Stands in for the SDK's HTTP layer; answers from a handler and records requests."""

    name = "recording"

    def __init__(self, handler: Handler) -> None:
        super().__init__()
        self._handler = handler
        self.requests: list[tuple[str, str, dict[str, list[str]]]] = []

    async def request_async(self, method, url, headers, post_data=None):
        method = method.upper()
        parts = urlsplit(url)
        body = post_data.decode() if isinstance(post_data, bytes) else (post_data or "")
        self.requests.append((method, parts.path, parse_qs(parts.query or body)))

        status, payload = self._handler(method, parts.path)
        return json.dumps(payload).encode(), status, {"request-id": "req_test"}

    async def close_async(self) -> None:
        return None


def _gateway(handler: Handler) -> tuple[StripeGateway, _RecordingHTTPClient]:
    http = _RecordingHTTPClient(handler)
    cfg = _StripeConfig(secret_key="sk_test_123", api_base="https://api.stripe.test")
    return StripeGateway(cfg, http_client=http), http


def _coupon(**fields) -> dict:
    return {"id": "C1", "object": "coupon", "valid": True, "metadata": {}, **fields}


def _missing(kind: str) -> tuple[int, dict]:
    return 404, {
        "error": {
            "type": "invalid_request_error",
            "code": "resource_missing",
            "message": f"No such {kind}",
        }
    }


@pytest.mark.asyncio
async def test_unit_price_uses_first_active_price() -> None:
    gateway, http = _gateway(
        lambda m, p: (
            200,
            {
                "object": "list",
                "data": [{"id": "price_1", "object": "price", "unit_amount": 500}],
                "has_more": False,
                "url": "/v1/prices",
            },
        )
    )

    assert await gateway.get_unit_price("prod_1") == 500

    method, path, params = http.requests[0]
    assert (method, path) == ("GET", "/v1/prices")
    assert params["product"] == ["prod_1"]
    assert params["active"] == ["true"]
    assert params["limit"] == ["1"]


@pytest.mark.asyncio
async def test_missing_price_is_not_found() -> None:
    gateway, _ = _gateway(
        lambda m, p: (200, {"object": "list", "data": [], "has_more": False, "url": "/v1/prices"})
    )

    with pytest.raises(GatewayNotFoundError):
        await gateway.get_price_reference("prod_1")


@pytest.mark.asyncio
async def test_get_coupon_expands_applies_to() -> None:
    gateway, http = _gateway(
        lambda m, p: (
            200,
            _coupon(
                percent_off=25.0,
                metadata={"times_redeemed": "3"},
                applies_to={"products": ["prod_1"]},
            ),
        )
    )

    coupon = await gateway.get_coupon("C1", expand=["applies_to"])

    assert coupon.applies_to is not None
    assert coupon.applies_to.products == ["prod_1"]
    assert coupon.metadata == {"times_redeemed": "3"}

    _, path, params = http.requests[0]
    assert path == "/v1/coupons/C1"
    assert ["applies_to"] in [v for k, v in params.items() if k.startswith("expand")]


@pytest.mark.asyncio
async def test_missing_coupon_is_not_found() -> None:
    gateway, _ = _gateway(lambda m, p: _missing("coupon"))

    with pytest.raises(GatewayNotFoundError) as exc_info:
        await gateway.get_coupon("C9")
    assert exc_info.value.object_id == "C9"


@pytest.mark.asyncio
async def test_coupon_id_cannot_escape_the_coupons_path() -> None:
    gateway, http = _gateway(lambda m, p: _missing("coupon"))

    with pytest.raises(GatewayNotFoundError):
        await gateway.get_coupon("../customers/cus_123")

    _, path, _ = http.requests[0]
    assert path.startswith("/v1/coupons/")
    assert "/customers/" not in path


@pytest.mark.asyncio
async def test_non_coupon_payload_is_never_validated_or_written() -> None:
    customer = {"id": "cus_123", "object": "customer", "metadata": {}}
    gateway, http = _gateway(lambda m, p: (200, customer))
    validator = CouponValidator(gateway, locks=RedemptionLocks())

    with pytest.raises(GatewayFaultError):
        await validator.check_general_validity("../customers/cus_123")
    with pytest.raises(GatewayFaultError):
        await validator.increment_redemption("../customers/cus_123")

    assert all(path.startswith("/v1/coupons/") for _, path, _ in http.requests)
    assert all(method == "GET" for method, _, _ in http.requests)


@pytest.mark.asyncio
async def test_update_metadata_sends_only_the_counter() -> None:
    gateway, http = _gateway(lambda m, p: (200, _coupon(metadata={"times_redeemed": "4"})))

    coupon = await gateway.update_coupon_metadata("C1", {"times_redeemed": "4"})

    assert coupon.metadata["times_redeemed"] == "4"
    method, path, body = http.requests[0]
    assert (method, path) == ("POST", "/v1/coupons/C1")
    assert body == {"metadata[times_redeemed]": ["4"]}


@pytest.mark.asyncio
async def test_promotion_code_filter_becomes_query_params() -> None:
    gateway, http = _gateway(
        lambda m, p: (
            200,
            {"object": "list", "data": [], "has_more": False, "url": "/v1/promotion_codes"},
        )
    )

    await gateway.list_promotion_codes(PromotionCodeFilter(active=True, coupon="C1", limit=5))

    _, path, params = http.requests[0]
    assert path == "/v1/promotion_codes"
    assert params["active"] == ["true"]
    assert params["coupon"] == ["C1"]
    assert params["limit"] == ["5"]


@pytest.mark.asyncio
async def test_checkout_session_params() -> None:
    gateway, http = _gateway(
        lambda m, p: (
            200,
            {"id": "cs_1", "object": "checkout.session", "url": "https://pay.test/cs_1"},
        )
    )

    session = await gateway.create_checkout_session(
        [CheckoutLineItem(price="price_1", quantity=2)],
        "C1",
        "https://shop.test/ok",
        "https://shop.test/no",
    )

    assert session.url == "https://pay.test/cs_1"
    method, path, body = http.requests[0]
    assert (method, path) == ("POST", "/v1/checkout/sessions")
    assert body["line_items[0][price]"] == ["price_1"]
    assert body["line_items[0][quantity]"] == ["2"]
    assert body["discounts[0][coupon]"] == ["C1"]
    assert body["mode"] == ["payment"]
    assert body["success_url"] == ["https://shop.test/ok"]


@pytest.mark.asyncio
async def test_confirm_missing_intent_is_not_found() -> None:
    gateway, http = _gateway(lambda m, p: _missing("payment_intent"))

    with pytest.raises(GatewayNotFoundError) as exc_info:
        await gateway.confirm_payment_intent("pi_1", "pm_card_visa", "https://shop.test")

    assert exc_info.value.object_id == "pi_1"
    assert http.requests[0][1] == "/v1/payment_intents/pi_1/confirm"


@pytest.mark.asyncio
async def test_api_error_is_gateway_error() -> None:
    gateway, _ = _gateway(
        lambda m, p: (
            400,
            {
                "error": {
                    "type": "invalid_request_error",
                    "code": "amount_too_small",
                    "message": "Amount must be at least $0.50 usd",
                }
            },
        )
    )

    with pytest.raises(PaymentGatewayError, match="at least") as exc_info:
        await gateway.create_payment_intent(0, "usd")
    assert not isinstance(exc_info.value, GatewayNotFoundError)


@pytest.mark.asyncio
async def test_connection_error_is_gateway_error() -> None:
    def _fail(method: str, path: str) -> tuple[int, dict]:
        raise stripe.APIConnectionError("connection refused")

    gateway, _ = _gateway(_fail)

    with pytest.raises(PaymentGatewayError, match="Stripe request failed"):
        await gateway.retrieve_payment_intent("pi_1")
