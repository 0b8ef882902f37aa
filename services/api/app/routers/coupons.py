from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from services.api.app.deps import get_coupon_queries
from services.api.app.models.gateway import Coupon, PromotionCode, PromotionCodeFilter
from services.api.app.routers.http_errors import raise_checkout_http_error
from services.api.app.services.coupon_queries import CouponQueries

router = APIRouter()


@router.get("/v1/coupons", response_model=list[Coupon])
async def list_coupons(queries: CouponQueries = Depends(get_coupon_queries)) -> list[Coupon]:
    try:
        return await queries.list_coupons()
    except Exception as e:
        raise_checkout_http_error(e)


@router.get("/v1/coupons/{coupon_id}", response_model=Coupon)
async def get_coupon(
    coupon_id: str, queries: CouponQueries = Depends(get_coupon_queries)
) -> Coupon:
    try:
        return await queries.get_coupon(coupon_id)
    except Exception as e:
        raise_checkout_http_error(e)


@router.get("/v1/coupons/{coupon_id}/details", response_model=Coupon)
async def get_coupon_expanded(
    coupon_id: str, queries: CouponQueries = Depends(get_coupon_queries)
) -> Coupon:
    try:
        return await queries.get_coupon_expanded(coupon_id)
    except Exception as e:
        raise_checkout_http_error(e)


@router.get("/v1/promotion-codes", response_model=list[PromotionCode])
async def list_promotion_codes(
    active: bool | None = None,
    code: str | None = None,
    coupon: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
    queries: CouponQueries = Depends(get_coupon_queries),
) -> list[PromotionCode]:
    filters = PromotionCodeFilter(active=active, code=code, coupon=coupon, limit=limit)
    try:
        return await queries.list_promotion_codes(filters)
    except Exception as e:
        raise_checkout_http_error(e)


@router.get("/v1/promotion-codes/{promotion_code_id}", response_model=PromotionCode)
async def get_promotion_code(
    promotion_code_id: str, queries: CouponQueries = Depends(get_coupon_queries)
) -> PromotionCode:
    try:
        return await queries.get_promotion_code(promotion_code_id)
    except Exception as e:
        raise_checkout_http_error(e)
