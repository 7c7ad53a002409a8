from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from ..enums import DiscountType


class CouponBase(BaseModel):
    """Base schema for coupons"""
    code: str = Field(..., min_length=1, max_length=64)
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: float = Field(gt=0, description="Percentage points or a fixed amount")
    min_order_value: float = Field(0, ge=0, description="Minimum subtotal required")
    max_discount: Optional[float] = Field(None, gt=0, description="Maximum discount for percent coupons")
    valid_until: datetime
    usage_limit: Optional[int] = Field(None, gt=0, description="Maximum number of non-cancelled orders")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("code must not be blank")
        return value


class CouponCreate(CouponBase):
    """Schema for creating coupons"""

    @field_validator("discount_value")
    @classmethod
    def percent_in_range(cls, value: float, info) -> float:
        if info.data.get("discount_type") == DiscountType.PERCENT and value > 100:
            raise ValueError("percent coupons can't exceed 100")
        return value


class CouponResponse(BaseModel):
    """Schema for coupon responses"""
    id: int
    code: str
    discount_type: DiscountType
    discount_value: float
    min_order_value: float = 0
    max_discount: Optional[float] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    is_active: bool
    times_used: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponValidationRequest(BaseModel):
    code: str = ""
    subtotal: float = Field(..., ge=0)


class CouponValidationResponse(BaseModel):
    success: bool
    discount: Optional[float] = None
    code: Optional[str] = None
    type: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class GeneratedCode(BaseModel):
    code: str
