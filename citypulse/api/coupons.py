"""
Discount coupon endpoints.
"""

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.principal import Organizer, User
from ..schemas.common import MessageResponse
from ..schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)
from ..services.coupon_service import CouponService
from ..utils.dependencies import get_current_organizer, get_current_user


router = APIRouter(prefix="/coupons", tags=["coupons"])


def get_coupon_service(db: AsyncSession = Depends(get_db)) -> CouponService:
    return CouponService(db)


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    coupon_data: CouponCreate,
    current_organizer: Organizer = Depends(get_current_organizer),
    coupon_service: CouponService = Depends(get_coupon_service)
) -> Any:
    """
    Create a coupon for the caller's events.

    Codes are stored upper-case and must be unique. When ``event_id`` is
    given the coupon only applies to that event.

    Raises:
        DuplicateCouponCodeError: If the code already exists
    """
    coupon = await coupon_service.create_coupon(current_organizer.id, coupon_data)
    return CouponResponse.model_validate(coupon)


@router.get("", response_model=List[CouponResponse])
async def list_coupons(
    current_organizer: Organizer = Depends(get_current_organizer),
    coupon_service: CouponService = Depends(get_coupon_service)
) -> Any:
    coupons = await coupon_service.list_coupons(current_organizer.id)
    return [CouponResponse.model_validate(coupon) for coupon in coupons]


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    request: CouponValidateRequest,
    current_user: User = Depends(get_current_user),
    coupon_service: CouponService = Depends(get_coupon_service)
) -> Any:
    """
    Check a code against an event before booking.

    Nothing is consumed; the first failing check is returned as an error.
    """
    coupon = await coupon_service.validate_coupon(request.code, request.event_id)
    return CouponValidateResponse(
        valid=True,
        discount_percentage=coupon.discount_percentage,
        code=coupon.code,
    )


@router.delete("/{coupon_id}", response_model=MessageResponse)
async def delete_coupon(
    coupon_id: UUID,
    current_organizer: Organizer = Depends(get_current_organizer),
    coupon_service: CouponService = Depends(get_coupon_service)
) -> Any:
    await coupon_service.delete_coupon(coupon_id, current_organizer.id)
    return MessageResponse(message="Coupon removed")
