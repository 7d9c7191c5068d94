"""
Coupon schemas for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CouponCreate(BaseModel):
    """Schema for creating a coupon."""

    code: str = Field(..., min_length=1, max_length=50)
    discount_percentage: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    expiry_date: datetime
    usage_limit: int = Field(100, ge=0, description="0 means unlimited")
    event_id: Optional[UUID] = Field(None, description="Restrict the coupon to one event")

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Coupon code must not be blank")
        return v


class CouponResponse(BaseModel):
    id: UUID
    code: str
    discount_percentage: Decimal
    organizer_id: UUID
    event_id: Optional[UUID] = None
    expiry_date: datetime
    is_active: bool
    usage_limit: int
    used_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    event_id: UUID


class CouponValidateResponse(BaseModel):
    valid: bool = True
    discount_percentage: Decimal
    code: str
