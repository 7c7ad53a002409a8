from sqlalchemy import Column, Integer, String, Text, Boolean, Float
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..models.base import TimeStampMixin


class Product(Base, TimeStampMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    # Relationships
    order_items = relationship("OrderItem", back_populates="product")


    def __repr__(self):
        return f"<Product(id={self.id}, title={self.title!r}, price={self.price}, stock={self.stock})>"
