import logging
from collections import OrderedDict
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import String, cast, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..core.config import Config
from ..enums import OrderStatus
from ..exceptions import (
    BadRequestException,
    IllegalStatusTransitionException,
    NotFoundException,
    OrderNotFoundException,
    OrderPersistenceException,
)
from ..models import Order, OrderItem, OrderStatusHistory, Product, User
from ..schemas.order import CartLineIn, OrderCreate
from .checkout import CartLine, CheckoutState
from .coupon_service import CouponService
from .order_status import allowed_transitions, can_transition, is_terminal, normalize_status, progress_step


logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, coupon_service: Optional[CouponService] = None):
        self.coupon_service = coupon_service or CouponService()

    async def _load_lines(self, items: List[CartLineIn], db: AsyncSession) -> Tuple[CartLine, ...]:
        """Price cart lines from the catalogue, merging repeated products and checking stock"""
        quantities: "OrderedDict[int, int]" = OrderedDict()
        for item in items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

        lines = []
        for product_id, quantity in quantities.items():
            product = await db.get(Product, product_id)
            if not product:
                raise NotFoundException(f"Product with ID {product_id} not found")

            if not product.is_active:
                raise BadRequestException(f"{product.title} is not available")

            if product.stock < quantity:
                raise BadRequestException(f"Not enough stock for {product.title}. Only {product.stock} available")

            lines.append(CartLine(product_id=product.id, quantity=quantity, unit_price=product.price, title=product.title))

        return tuple(lines)

    async def quote(self, items: List[CartLineIn], coupon_code: Optional[str], db: AsyncSession) -> Dict[str, Any]:
        """
        Price a cart the way checkout would, without writing anything.

        A rejected coupon leaves the totals as if no coupon had been entered
        and its message is returned alongside as ``coupon_error``.
        """
        state = CheckoutState(lines=await self._load_lines(items, db))
        coupon_error = None

        if coupon_code and coupon_code.strip():
            result = await self.coupon_service.validate(coupon_code, state.subtotal, db)
            state = state.apply_coupon(result)
            coupon_error = result.error

        totals = state.totals()
        return {
            "subtotal": totals.subtotal,
            "discount": totals.discount,
            "shipping": totals.shipping,
            "total": totals.total,
            "coupon_code": totals.coupon_code,
            "coupon_error": coupon_error,
            "currency": Config.STORE_CURRENCY,
            "display": totals.formatted(Config.STORE_CURRENCY),
        }

    async def place_order(self, user_id: str, order_data: OrderCreate, db: AsyncSession) -> Dict[str, Any]:
        """
        Create an order in ``pending`` status.

        The coupon is validated again here against the server-side subtotal;
        a rejection aborts the order with the same message the customer saw.
        ``total_amount`` is computed once and stored.
        """
        state = CheckoutState(lines=await self._load_lines(order_data.items, db))

        if order_data.coupon_code and order_data.coupon_code.strip():
            result = await self.coupon_service.validate(order_data.coupon_code, state.subtotal, db)
            if not result.success:
                raise BadRequestException(result.error)
            state = state.apply_coupon(result)

        totals = state.totals()

        try:
            new_order = Order(
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                user_name=order_data.user_name,
                email=order_data.email,
                address=order_data.address,
                city=order_data.city,
                zip_code=order_data.zip_code,
                payment_method=order_data.payment_method.value,
                subtotal=totals.subtotal,
                discount=totals.discount,
                shipping_cost=totals.shipping,
                total_amount=totals.total,
                coupon_code=totals.coupon_code,
            )
            db.add(new_order)
            await db.flush()  # Get the order ID without committing

            for line in state.lines:
                db.add(OrderItem(
                    order_id=new_order.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_purchase=line.unit_price,
                ))

                product = await db.get(Product, line.product_id)
                product.stock -= line.quantity

            await db.commit()
            await db.refresh(new_order)

        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to create order for user %s", user_id)
            raise OrderPersistenceException()

        logger.info(
            "Order %s placed by %s: subtotal=%s discount=%s shipping=%s total=%s coupon=%s",
            new_order.id, user_id, totals.subtotal, totals.discount, totals.shipping, totals.total, totals.coupon_code
        )
        return await self.get_order_detail(new_order.id, user_id, db)

    async def get_order_by_id(self, order_id: int, user_id: Optional[str], db: AsyncSession) -> Order:
        """
        Get order by ID
        If user_id is provided, ensure the order belongs to that user
        """
        query = select(Order).where(Order.id == order_id)

        if user_id is not None:
            query = query.where(Order.user_id == user_id)

        order = (await db.execute(query)).scalars().first()
        if not order:
            raise OrderNotFoundException()

        return order

    async def get_user_orders(self, user_id: str, db: AsyncSession, skip: int = 0, limit: int = 10) -> List[Dict[str, Any]]:
        """Get all orders for a specific user, most recent first"""
        query = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
        orders = (await db.execute(query)).scalars().all()
        return [self._serialize(order) for order in orders]

    async def get_order_detail(self, order_id: int, user_id: Optional[str], db: AsyncSession) -> Dict[str, Any]:
        """Get detailed order information including items"""
        order = await self.get_order_by_id(order_id, user_id, db)

        items_query = (
            select(OrderItem, Product)
            .join(Product)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        )
        items_data = (await db.execute(items_query)).all()

        items = [
            {
                "id": item.id,
                "product_id": product.id,
                "product_title": product.title,
                "quantity": item.quantity,
                "price_at_purchase": item.price_at_purchase,
                "total": item.line_total,
            }
            for item, product in items_data
        ]

        customer = await db.get(User, order.user_id)
        status = normalize_status(order.status)

        detail = self._serialize(order)
        detail.update({
            "user_name": order.user_name,
            "email": order.email,
            "address": order.address,
            "city": order.city,
            "zip_code": order.zip_code,
            "customer_name": customer.full_name if customer else None,
            "items": items,
            "progress_step": progress_step(status),
            "allowed_transitions": allowed_transitions(status),
        })
        return detail

    # Admin-specific order management methods

    async def get_all_orders_admin(
        self,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 20,
        status_filter: Optional[OrderStatus] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """All orders, newest first, filtered on the normalised status and on order id / customer name"""
        query = (
            select(Order, User.full_name)
            .outerjoin(User, User.id == Order.user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

        if status_filter:
            stored = func.lower(func.coalesce(Order.status, OrderStatus.PENDING.value))
            query = query.where(stored == status_filter.value)

        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            query = query.where(or_(
                cast(Order.id, String).like(term),
                func.lower(User.full_name).like(term),
            ))

        rows = (await db.execute(query.offset(skip).limit(limit))).all()

        orders = []
        for order, full_name in rows:
            data = self._serialize(order)
            data["customer_name"] = full_name
            orders.append(data)
        return orders

    async def get_transitions(self, order_id: int, db: AsyncSession) -> Dict[str, Any]:
        """The status actions an admin may take on this order"""
        order = await self.get_order_by_id(order_id, None, db)
        status = normalize_status(order.status)
        return {
            "order_id": order.id,
            "status": status,
            "allowed_transitions": allowed_transitions(status),
            "is_terminal": is_terminal(status),
        }

    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        admin_id: Optional[str],
        db: AsyncSession,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Move an order to ``status`` if the status machine allows it.

        The new status is only visible once the commit succeeds; a failed
        write is rolled back and the order keeps its previous status.
        """
        order = await self.get_order_by_id(order_id, None, db)
        previous_status = normalize_status(order.status)

        if not can_transition(previous_status, status):
            logger.info("Rejected transition %s -> %s for order %s", previous_status.value, status.value, order_id)
            raise IllegalStatusTransitionException()

        # only write over the status that was read; a concurrent change makes this match nothing
        stored = Order.status.is_(None) if order.status is None else Order.status == order.status

        try:
            written = await db.execute(
                update(Order)
                .where(Order.id == order.id, stored)
                .values(status=status.value)
            )
            if written.rowcount == 0:
                await db.rollback()
                logger.info("Order %s changed while updating to %s; rejected", order_id, status.value)
                raise IllegalStatusTransitionException()

            db.add(OrderStatusHistory(
                order_id=order.id,
                previous_status=previous_status.value,
                new_status=status.value,
                changed_by_id=admin_id,
                notes=notes.strip() if notes and notes.strip() else None,
            ))
            await db.commit()

        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to update order %s status to %s", order_id, status.value)
            raise OrderPersistenceException()

        logger.info("Order %s status updated: %s -> %s by %s", order_id, previous_status.value, status.value, admin_id)
        return await self.get_order_detail(order_id, None, db)

    async def get_status_history(self, order_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
        await self.get_order_by_id(order_id, None, db)
        query = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.changed_at, OrderStatusHistory.id)
        )
        entries = (await db.execute(query)).scalars().all()
        return [
            {
                "previous_status": entry.previous_status,
                "new_status": entry.new_status,
                "changed_by_id": entry.changed_by_id,
                "changed_at": entry.changed_at,
                "notes": entry.notes,
            }
            for entry in entries
        ]

    def _serialize(self, order: Order) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": normalize_status(order.status),
            "payment_method": order.payment_method,
            "subtotal": order.subtotal,
            "discount": order.discount,
            "shipping_cost": order.shipping_cost,
            "total_amount": order.total_amount,
            "coupon_code": order.coupon_code,
            "created_at": order.created_at,
        }
