from .coupon import Coupon
from .order import Order
from .order_item import OrderItem
from .order_status_history import OrderStatusHistory
from .product import Product
from .user import User


__all__ = [
    "Coupon",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Product",
    "User",
]
