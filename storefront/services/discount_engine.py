"""
Coupon validation and discount calculation.

Everything here is a pure computation over already-fetched data: the caller
looks the coupon up (by its normalised code), counts its usage, and hands both
in. Nothing is written back; in particular no usage slot is reserved, so two
checkouts racing for the last use of a coupon can both be accepted.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..enums import CouponRejection, DiscountType
from ..utils.currency import plain_amount
from ..utils.time import to_naive_utc, utcnow


@dataclass(frozen=True)
class CouponRecord:
    """The fields of a stored coupon the engine needs."""
    code: str
    discount_type: DiscountType
    discount_value: Any
    min_order_value: Any = 0
    max_discount: Any = None
    valid_until: Optional[datetime] = None
    is_active: bool = True
    usage_limit: Optional[int] = None

    @classmethod
    def from_model(cls, coupon) -> "CouponRecord":
        return cls(
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            min_order_value=coupon.min_order_value,
            max_discount=coupon.max_discount,
            valid_until=coupon.valid_until,
            is_active=coupon.is_active,
            usage_limit=coupon.usage_limit,
        )


@dataclass(frozen=True)
class DiscountResult:
    success: bool
    discount: float = 0.0
    code: Optional[str] = None
    type: Optional[str] = None
    reason: Optional[CouponRejection] = None
    error: Optional[str] = None

    @classmethod
    def rejected(cls, reason: CouponRejection, message: str) -> "DiscountResult":
        return cls(success=False, reason=reason, error=message)

    @classmethod
    def applied(cls, discount: float, code: str, discount_type: str) -> "DiscountResult":
        return cls(success=True, discount=discount, code=code, type=discount_type)

    def as_payload(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "reason": self.reason.value}
        return {"success": True, "discount": self.discount, "code": self.code, "type": self.type}


# the same set is trimmed from stored order codes when counting usage
CODE_WHITESPACE = " \t\n\r\f\v"


def normalize_code(code: Optional[str]) -> str:
    """Trim and uppercase a coupon code; ' save10 ' and 'SAVE10' share a lookup key."""
    return (code or "").strip(CODE_WHITESPACE).upper()


def _to_number(value: Any, default: float = 0.0) -> float:
    """Coerce stored numerics; anything unparseable comes back as NaN."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _resolve_type(discount_type: Any) -> DiscountType:
    if isinstance(discount_type, DiscountType):
        return discount_type
    raw = str(discount_type or DiscountType.FIXED.value).strip().lower()
    if "cent" in raw or "%" in raw:
        return DiscountType.PERCENT
    return DiscountType.FIXED


def validate_coupon(
    code: Optional[str],
    subtotal: float,
    coupon: Optional[CouponRecord],
    times_used: int = 0,
    now: Optional[datetime] = None,
) -> DiscountResult:
    """
    Decide whether ``coupon`` applies to an order of ``subtotal`` and by how much.

    ``coupon`` is the lookup result for ``normalize_code(code)``; pass None
    when nothing was found. ``times_used`` is the number of non-cancelled
    orders already carrying the code.

    Rejections are returned, not raised, in this order: empty code, not
    found, inactive, expired, usage limit reached, below minimum order value.

    On success the discount is the percentage of subtotal (or the fixed
    value), with a non-numeric stored value counting as zero, clamped first
    to ``max_discount`` and then to the subtotal itself.
    """
    if subtotal is None or subtotal < 0:
        raise ValueError("subtotal must be a non-negative number")

    normalized = normalize_code(code)
    if not normalized:
        return DiscountResult.rejected(CouponRejection.EMPTY_CODE, "Please enter a coupon code.")

    shown = (code or "").strip()

    if coupon is None:
        return DiscountResult.rejected(CouponRejection.NOT_FOUND, f"Coupon '{shown}' is invalid.")

    if coupon.is_active is False:
        return DiscountResult.rejected(CouponRejection.INACTIVE, f"Coupon '{shown}' is inactive.")

    now = to_naive_utc(now) if now is not None else utcnow()
    valid_until = to_naive_utc(coupon.valid_until)
    if valid_until is not None and now >= valid_until:
        return DiscountResult.rejected(CouponRejection.EXPIRED, f"Coupon '{shown}' has expired.")

    if coupon.usage_limit is not None and times_used >= coupon.usage_limit:
        return DiscountResult.rejected(
            CouponRejection.USAGE_LIMIT_REACHED,
            f"Coupon '{shown}' has reached its usage limit."
        )

    min_order = _to_number(coupon.min_order_value)
    if math.isnan(min_order):
        min_order = 0.0
    if subtotal < min_order:
        return DiscountResult.rejected(
            CouponRejection.BELOW_MINIMUM,
            f"This coupon requires a minimum order of {plain_amount(min_order)}"
        )

    discount_type = _resolve_type(coupon.discount_type)
    value = _to_number(coupon.discount_value)

    if discount_type == DiscountType.PERCENT:
        discount = subtotal * value / 100
    else:
        discount = value

    if math.isnan(discount):
        discount = 0.0

    cap = _to_number(coupon.max_discount, default=math.nan)
    if not math.isnan(cap) and cap > 0 and discount > cap:
        discount = cap

    discount = max(0.0, min(round(discount, 2), subtotal))

    return DiscountResult.applied(
        discount=discount,
        code=normalize_code(coupon.code),
        discount_type="percentage" if discount_type == DiscountType.PERCENT else "fixed",
    )
