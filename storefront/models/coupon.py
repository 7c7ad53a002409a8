from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum

from ..db.base import Base
from ..enums import DiscountType
from ..models.base import TimeStampMixin


class Coupon(Base, TimeStampMixin):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, unique=True, index=True)  # always stored uppercase
    discount_type = Column(Enum(DiscountType), nullable=False, default=DiscountType.PERCENT)
    discount_value = Column(Float, nullable=False)  # Either percentage points or a fixed amount
    min_order_value = Column(Float, nullable=False, default=0)
    max_discount = Column(Float, nullable=True)  # Only meaningful for percent coupons
    valid_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_limit = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Coupon(id={self.id}, code={self.code!r}, discount_type={self.discount_type}, discount_value={self.discount_value})>"
