from .coupon_service import CouponService
from .order_service import OrderService


__all__ = [
    "CouponService",
    "OrderService",
]
