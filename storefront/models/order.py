from sqlalchemy import Column, Integer, String, Float, ForeignKey
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..enums import OrderStatus, PaymentMethod
from ..models.base import TimeStampMixin


class Order(Base, TimeStampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    # plain string so legacy rows ("Pending", NULL) survive; normalised on read
    status = Column(String, default=OrderStatus.PENDING.value, nullable=True)
    user_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    zip_code = Column(String, nullable=False)
    payment_method = Column(String, default=PaymentMethod.COD.value, nullable=False)
    subtotal = Column(Float, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    shipping_cost = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, nullable=False)
    # snapshot of the code used, not a foreign key
    coupon_code = Column(String, nullable=True, index=True)

    # Relationships
    customer = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship("OrderStatusHistory", back_populates="order", cascade="all, delete-orphan")
