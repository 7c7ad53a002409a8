from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ..core.dependencies import get_db, get_current_user
from ..models import User
from ..schemas.order import OrderCreate, OrderDetail, OrderResponse, QuoteRequest, QuoteResponse
from ..services.order_service import OrderService

router = APIRouter()
order_service = OrderService()


@router.post("/quote", response_model=QuoteResponse)
async def quote_order(
    quote_request: QuoteRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    **Checkout Summary**

    Price the given cart lines with catalogue prices, an optional coupon and
    the store's shipping rule. Nothing is saved.

    **Returns:**
    - subtotal, discount, shipping and total as numbers
    - the same values formatted in the store currency under `display`
    - `coupon_error` when the coupon was rejected; totals then ignore it
    """
    return await order_service.quote(quote_request.items, quote_request.coupon_code, db)


@router.post("/", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Place Order**

    Create a new order from the submitted cart lines and shipping details.

    **Process:**
    1. Prices every line from the catalogue and checks stock
    2. Re-validates the coupon against the subtotal, if one was given
    3. Adds shipping and stores the final total
    4. Saves the order as `pending` with item price snapshots and reduces stock
    """
    return await order_service.place_order(current_user.id, order_data, db)


@router.get("/", response_model=List[OrderResponse])
async def get_user_orders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(10, ge=1, le=100, description="Items per page")
):
    """Orders placed by the current user, most recent first"""
    skip = (page - 1) * size
    return await order_service.get_user_orders(current_user.id, db, skip, size)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order_detail(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Track Order**

    Full details for one of the current user's orders, including items and
    `progress_step` (0 pending, 1 processing, 2 shipped, 3 delivered, -1 cancelled).
    """
    return await order_service.get_order_detail(order_id, current_user.id, db)
