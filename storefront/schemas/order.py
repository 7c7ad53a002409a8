from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Dict
from datetime import datetime

from ..enums import OrderStatus, PaymentMethod


class CartLineIn(BaseModel):
    """A cart line as sent by the storefront; prices always come from the catalogue"""
    product_id: int
    quantity: int = Field(..., ge=1)


class QuoteRequest(BaseModel):
    items: List[CartLineIn] = Field(..., min_length=1)
    coupon_code: Optional[str] = None


class QuoteResponse(BaseModel):
    subtotal: float
    discount: float
    shipping: float
    total: float
    coupon_code: Optional[str] = None
    coupon_error: Optional[str] = None
    currency: str
    display: Dict[str, str]


class OrderCreate(BaseModel):
    """Schema for placing an order"""
    user_name: str = Field(..., min_length=1)
    email: EmailStr
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.COD
    items: List[CartLineIn] = Field(..., min_length=1)
    coupon_code: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product_title: Optional[str] = None
    quantity: int
    price_at_purchase: float
    total: float


class OrderResponse(BaseModel):
    id: int
    user_id: str
    status: OrderStatus
    payment_method: str
    subtotal: float
    discount: float
    shipping_cost: float
    total_amount: float
    coupon_code: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderDetail(OrderResponse):
    """Schema for detailed order responses"""
    user_name: str
    email: str
    address: str
    city: str
    zip_code: str
    items: List[OrderItemResponse]
    progress_step: int
    allowed_transitions: List[OrderStatus]


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus
    notes: Optional[str] = None


class StatusTransitions(BaseModel):
    order_id: int
    status: OrderStatus
    allowed_transitions: List[OrderStatus]
    is_terminal: bool
