"""
Checkout state passed explicitly through the order flow.

A ``CheckoutState`` is immutable: applying or removing a coupon returns a new
state, and applying a rejected coupon returns the state unchanged.
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .discount_engine import DiscountResult
from ..core.config import Config
from ..utils.currency import format_currency, format_discount


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    unit_price: float
    title: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: float
    discount: float
    shipping: float
    total: float
    coupon_code: Optional[str] = None

    def formatted(self, currency: str) -> dict:
        return {
            "subtotal": format_currency(self.subtotal, currency),
            "discount": format_discount(self.discount, currency),
            "shipping": format_currency(self.shipping, currency),
            "total": format_currency(self.total, currency),
        }


def shipping_for(subtotal: float, free_threshold: Optional[float] = None, flat_fee: Optional[float] = None) -> float:
    """Free shipping strictly above the threshold, otherwise the flat fee. An empty cart ships nothing."""
    free_threshold = Config.FREE_SHIPPING_THRESHOLD if free_threshold is None else free_threshold
    flat_fee = Config.FLAT_SHIPPING_FEE if flat_fee is None else flat_fee
    if subtotal <= 0:
        return 0.0
    return 0.0 if subtotal > free_threshold else flat_fee


@dataclass(frozen=True)
class CheckoutState:
    lines: Tuple[CartLine, ...] = field(default_factory=tuple)
    applied: Optional[DiscountResult] = None

    @property
    def subtotal(self) -> float:
        return round(sum(line.line_total for line in self.lines), 2)

    @property
    def coupon_code(self) -> Optional[str]:
        return self.applied.code if self.applied else None

    def apply_coupon(self, result: DiscountResult) -> "CheckoutState":
        if not result.success:
            return self
        return replace(self, applied=result)

    def remove_coupon(self) -> "CheckoutState":
        return replace(self, applied=None)

    def totals(self, free_threshold: Optional[float] = None, flat_fee: Optional[float] = None) -> CheckoutTotals:
        subtotal = self.subtotal
        discount = min(self.applied.discount, subtotal) if self.applied else 0.0
        shipping = shipping_for(subtotal, free_threshold, flat_fee)
        return CheckoutTotals(
            subtotal=subtotal,
            discount=discount,
            shipping=shipping,
            total=round(subtotal - discount + shipping, 2),
            coupon_code=self.coupon_code,
        )
