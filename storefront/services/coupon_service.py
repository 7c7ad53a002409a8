import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..core.config import Config
from ..enums import OrderStatus
from ..exceptions import (
    BadRequestException,
    CouponAlreadyExistsException,
    CouponLookupFailedException,
    CouponNotFoundException,
)
from ..models import Coupon, Order
from ..schemas.coupon import CouponCreate
from ..utils.time import to_naive_utc, utcnow
from .discount_engine import CODE_WHITESPACE, CouponRecord, DiscountResult, normalize_code, validate_coupon


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def _normalized_order_code():
    return func.upper(func.trim(Order.coupon_code, CODE_WHITESPACE))


def _not_cancelled():
    return func.lower(func.coalesce(Order.status, OrderStatus.PENDING.value)) != OrderStatus.CANCELLED.value


class CouponService:
    """
    Persistence for coupons and the derived usage count.

    Usage is never stored: it is the number of non-cancelled orders whose
    ``coupon_code`` matches, compared trimmed and case-insensitively.
    """

    async def find_by_code(self, code: str, db: AsyncSession) -> Optional[Coupon]:
        stmt = select(Coupon).where(Coupon.code == normalize_code(code))
        return (await db.execute(stmt)).scalars().first()

    async def count_usage(self, code: str, db: AsyncSession) -> int:
        stmt = (
            select(func.count(Order.id))
            .where(_normalized_order_code() == normalize_code(code))
            .where(_not_cancelled())
        )
        return (await db.execute(stmt)).scalar_one()

    async def usage_counts(self, db: AsyncSession) -> Dict[str, int]:
        """Usage for every code that appears on an order, in one query."""
        code = _normalized_order_code()
        stmt = (
            select(code, func.count(Order.id))
            .where(Order.coupon_code.is_not(None))
            .where(_not_cancelled())
            .group_by(code)
        )
        rows = (await db.execute(stmt)).all()
        return {row[0]: row[1] for row in rows}

    async def validate(self, code: Optional[str], subtotal: float, db: AsyncSession) -> DiscountResult:
        """
        Look the code up and run it through the discount engine.

        Business rejections come back as a rejected ``DiscountResult``; only a
        failing lookup raises, as ``CouponLookupFailedException``.
        """
        normalized = normalize_code(code)
        if not normalized:
            return validate_coupon(code, subtotal, None)

        try:
            coupon = await self.find_by_code(normalized, db)
            times_used = 0
            if coupon is not None and coupon.usage_limit is not None:
                times_used = await self.count_usage(normalized, db)
        except SQLAlchemyError:
            logger.exception("Coupon lookup failed for %s", normalized)
            raise CouponLookupFailedException()

        record = CouponRecord.from_model(coupon) if coupon is not None else None
        result = validate_coupon(code, subtotal, record, times_used=times_used)

        if not result.success:
            logger.info("Coupon %s rejected: %s", normalized, result.reason.value)

        return result

    # Admin management

    async def list_coupons(self, db: AsyncSession, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """All coupons, newest first, each with its derived ``times_used``."""
        stmt = select(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc())
        if search and search.strip():
            stmt = stmt.where(Coupon.code.contains(normalize_code(search)))

        coupons = (await db.execute(stmt)).scalars().all()

        try:
            usage = await self.usage_counts(db)
        except SQLAlchemyError:
            # the coupon list is still useful without counts
            logger.warning("Could not load coupon usage counts", exc_info=True)
            usage = {}

        return [self._serialize(coupon, usage.get(coupon.code, 0)) for coupon in coupons]

    async def get_coupon(self, coupon_id: int, db: AsyncSession) -> Coupon:
        coupon = await db.get(Coupon, coupon_id)
        if not coupon:
            raise CouponNotFoundException()
        return coupon

    async def create_coupon(self, data: CouponCreate, db: AsyncSession) -> Dict[str, Any]:
        valid_until = to_naive_utc(data.valid_until)
        if valid_until <= utcnow():
            raise BadRequestException("Expiry date cannot be in the past")

        if await self.find_by_code(data.code, db):
            raise CouponAlreadyExistsException()

        coupon = Coupon(
            code=data.code,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            min_order_value=data.min_order_value,
            max_discount=data.max_discount,
            valid_until=valid_until,
            usage_limit=data.usage_limit,
            is_active=True,
        )

        try:
            db.add(coupon)
            await db.commit()
            await db.refresh(coupon)
        except IntegrityError:
            await db.rollback()
            raise CouponAlreadyExistsException()

        logger.info("Created coupon %s (%s %s)", coupon.code, coupon.discount_type.value, coupon.discount_value)
        return self._serialize(coupon, 0)

    async def toggle_active(self, coupon_id: int, db: AsyncSession) -> Dict[str, Any]:
        coupon = await self.get_coupon(coupon_id, db)
        coupon.is_active = not coupon.is_active

        await db.commit()
        await db.refresh(coupon)

        logger.info("Coupon %s %s", coupon.code, "enabled" if coupon.is_active else "disabled")
        return self._serialize(coupon, await self.count_usage(coupon.code, db))

    async def delete_coupon(self, coupon_id: int, db: AsyncSession) -> None:
        coupon = await self.get_coupon(coupon_id, db)
        code = coupon.code
        await db.delete(coupon)
        await db.commit()
        logger.info("Deleted coupon %s", code)

    def generate_code(self, length: Optional[int] = None) -> str:
        length = length or Config.COUPON_CODE_LENGTH
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

    def _serialize(self, coupon: Coupon, times_used: int) -> Dict[str, Any]:
        return {
            "id": coupon.id,
            "code": coupon.code,
            "discount_type": coupon.discount_type,
            "discount_value": coupon.discount_value,
            "min_order_value": coupon.min_order_value or 0,
            "max_discount": coupon.max_discount,
            "valid_until": coupon.valid_until,
            "is_active": coupon.is_active,
            "usage_limit": coupon.usage_limit,
            "times_used": times_used,
            "created_at": coupon.created_at,
        }
