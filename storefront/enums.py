import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DiscountType(str, enum.Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class CouponRejection(str, enum.Enum):
    EMPTY_CODE = "empty_code"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    BELOW_MINIMUM = "below_minimum"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
