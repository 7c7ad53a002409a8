from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_db
from ..schemas.coupon import CouponValidationRequest, CouponValidationResponse
from ..services.coupon_service import CouponService

router = APIRouter()
coupon_service = CouponService()


@router.post("/validate", response_model=CouponValidationResponse, response_model_exclude_none=True)
async def validate_coupon(
    payload: CouponValidationRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    **Validate Coupon**

    Check a typed-in coupon code against the current cart subtotal.

    **Request Body:**
    - **code**: Coupon code as entered (case and surrounding spaces are ignored)
    - **subtotal**: Cart total before discount and shipping

    **Returns:**
    - `{"success": true, "discount", "code", "type"}` when the coupon applies
    - `{"success": false, "error", "reason"}` when it doesn't; the error is meant
      to be shown to the customer as-is

    A failing coupon lookup answers 503 with a generic retry message instead.
    """
    result = await coupon_service.validate(payload.code, payload.subtotal, db)
    return result.as_payload()
