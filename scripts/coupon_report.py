from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone

from services.api.app.services.coupon_queries import CouponQueries
from services.api.app.services.coupon_validator import redemption_count
from services.api.app.services.gateway_factory import get_payment_gateway


async def _run(only_valid: bool) -> int:
    coupons = await CouponQueries(get_payment_gateway()).list_coupons()

    print(f"{'id':<16} {'discount':<12} {'redeemed':>8} {'limit':>6}  expires")
    for c in coupons:
        if only_valid and not c.valid:
            continue

        if c.amount_off is not None:
            discount = f"{c.amount_off} {c.currency or ''}".strip()
        elif c.percent_off is not None:
            discount = f"{c.percent_off:g}%"
        else:
            discount = "-"

        expires = (
            datetime.fromtimestamp(c.redeem_by, tz=timezone.utc).strftime("%Y-%m-%d")
            if c.redeem_by
            else "-"
        )
        limit = c.max_redemptions if c.max_redemptions is not None else "-"
        print(f"{c.id:<16} {discount:<12} {redemption_count(c):>8} {limit:>6}  {expires}")

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Print coupons with their redemption counters")
    parser.add_argument("--only-valid", action="store_true", help="Skip coupons marked invalid")
    args = parser.parse_args()

    return asyncio.run(_run(args.only_valid))


if __name__ == "__main__":
    raise SystemExit(main())
