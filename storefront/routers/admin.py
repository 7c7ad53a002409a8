from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ..core.dependencies import get_db, get_current_admin
from ..models import User
from ..schemas.coupon import CouponCreate, CouponResponse, GeneratedCode
from ..schemas.order import (
    OrderDetail,
    OrderResponse,
    OrderStatus as OrderStatusEnum,
    OrderStatusUpdate,
    StatusTransitions,
)
from ..services.coupon_service import CouponService
from ..services.order_service import OrderService

router = APIRouter()

coupon_service = CouponService()
order_service = OrderService(coupon_service)


# =============================================================================
# ADMIN COUPON MANAGEMENT ENDPOINTS
# =============================================================================

@router.get("/coupons", response_model=List[CouponResponse])
async def list_coupons(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
    search: Optional[str] = Query(None, description="Case-insensitive match on the code")
):
    """
    **List Coupons (Admin)**

    All coupons, newest first. `times_used` counts the non-cancelled orders
    that carry each code.
    """
    return await coupon_service.list_coupons(db, search)


@router.post("/coupons", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    coupon: CouponCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """
    **Create Coupon (Admin)**

    **Request Body:**
    - **code**: Stored trimmed and uppercased; must be unique
    - **discount_type**: `percent` or `fixed`
    - **discount_value**: Percentage points (at most 100) or a fixed amount
    - **min_order_value**: Minimum subtotal (default 0)
    - **max_discount**: Optional cap for percent coupons
    - **valid_until**: Expiry; can't be in the past
    - **usage_limit**: Optional number of non-cancelled orders allowed

    New coupons are created active.
    """
    return await coupon_service.create_coupon(coupon, db)


@router.get("/coupons/generate-code", response_model=GeneratedCode)
async def generate_coupon_code(
    _: User = Depends(get_current_admin),
    length: Optional[int] = Query(None, ge=4, le=32)
):
    """A random code of uppercase letters and digits"""
    return {"code": coupon_service.generate_code(length)}


@router.patch("/coupons/{coupon_id}/toggle", response_model=CouponResponse)
async def toggle_coupon(
    coupon_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """Enable a disabled coupon or disable an active one"""
    return await coupon_service.toggle_active(coupon_id, db)


@router.delete("/coupons/{coupon_id}", status_code=status.HTTP_200_OK)
async def delete_coupon(
    coupon_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """Delete a coupon; orders that used it keep their code snapshot"""
    await coupon_service.delete_coupon(coupon_id, db)
    return {"message": "Coupon deleted", "coupon_id": coupon_id}


# =============================================================================
# ADMIN ORDER MANAGEMENT ENDPOINTS
# =============================================================================

@router.get("/orders", response_model=List[OrderResponse])
async def get_all_orders(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
    status_filter: Optional[OrderStatusEnum] = Query(None, description="Filter by order status"),
    search: Optional[str] = Query(None, description="Match on order id or customer name"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Items per page")
):
    """
    **Get All Orders (Admin)**

    Retrieve all orders, newest first.

    **Query Parameters:**
    - **status_filter**: Filter by order status; stored statuses are compared case-insensitively
    - **search**: Part of the order id or of the customer's name
    - **page** / **size**: Pagination
    """
    skip = (page - 1) * size
    return await order_service.get_all_orders_admin(
        db=db,
        skip=skip,
        limit=size,
        status_filter=status_filter,
        search=search,
    )


@router.get("/orders/{order_id}", response_model=OrderDetail)
async def get_order_admin(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """Complete details for any order in the system"""
    return await order_service.get_order_detail(order_id, None, db)


@router.get("/orders/{order_id}/transitions", response_model=StatusTransitions)
async def get_order_transitions(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """
    **Allowed Status Actions (Admin)**

    The statuses this order can move to next. Delivered and cancelled orders
    have none.
    """
    return await order_service.get_transitions(order_id, db)


@router.get("/orders/{order_id}/history")
async def get_order_history(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin)
):
    """Status changes recorded for the order, oldest first"""
    return await order_service.get_status_history(order_id, db)


@router.patch("/orders/{order_id}/status", response_model=OrderDetail)
async def update_order_status_admin(
    order_id: int,
    status_update: OrderStatusUpdate,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    **Update Order Status (Admin)**

    **Request Body:**
    - **status**: New order status (processing, shipped, delivered, cancelled)
    - **notes**: Optional notes about the status change

    **Business Rules:**
    - Pending orders can move to any later status or be cancelled
    - Processing orders can be shipped, delivered or cancelled
    - Shipped orders can be delivered or cancelled
    - Delivered and cancelled orders are final
    - Moving backwards or to the same status answers 409

    **Returns:**
    - The order as saved, with its new status
    """
    return await order_service.update_order_status(
        order_id=order_id,
        status=status_update.status,
        admin_id=current_admin.id,
        db=db,
        notes=status_update.notes,
    )
