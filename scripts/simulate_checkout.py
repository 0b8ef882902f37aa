from __future__ import annotations

import argparse
import asyncio

from services.api.app.config import CheckoutConfig
from services.api.app.models.checkout import CartItem
from services.api.app.services.checkout import CheckoutOrchestrator
from services.api.app.services.errors import CheckoutError
from services.api.app.services.gateway_factory import get_payment_gateway


def _parse_item(raw: str) -> CartItem:
    product_id, _, qty = raw.partition(":")
    return CartItem(product_id=product_id, quantity=int(qty or "1"))


async def _run(args: argparse.Namespace) -> int:
    orchestrator = CheckoutOrchestrator(get_payment_gateway(), CheckoutConfig.from_env())
    cart = [_parse_item(raw) for raw in args.item]

    try:
        result = await orchestrator.checkout(cart, args.coupon)
        print(result.model_dump_json(indent=2))

        if args.confirm and result.kind == "paymentIntent":
            intent = await orchestrator.confirm_payment(
                result.id, args.coupon, payment_method=args.payment_method
            )
            print(intent.model_dump_json(indent=2))
    except CheckoutError as e:
        print(f"{e.kind.value} ({e.status_code}): {e.message}")
        return 1

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run one cart through checkout against the configured payment gateway"
    )
    parser.add_argument(
        "--item",
        action="append",
        required=True,
        help="product_id[:quantity], repeatable (e.g. --item prod_mug:2)",
    )
    parser.add_argument("--coupon", default=None, help="Coupon ID to apply")
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Confirm the resulting payment intent with a test payment method",
    )
    parser.add_argument(
        "--payment-method",
        default=None,
        help="Test payment method token (default: TALLY_CONFIRM_PAYMENT_METHOD)",
    )
    args = parser.parse_args()

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
