from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Callable


class APIException(Exception):
    """ Base class for all exceptions in the Storefront API. """
    pass


class AuthenticationRequiredException(APIException):
    """ Exception is raised when a request reaches a protected route without a known user. """
    pass


class CouponAlreadyExistsException(APIException):
    """ Exception is raised when an admin creates a coupon with a code that exists. """
    pass


class CouponNotFoundException(APIException):
    """ Exception is raised when an admin action targets a coupon that doesn't exist. """
    pass


class CouponLookupFailedException(APIException):
    """ Exception is raised when the coupon store can't be reached while validating a code. """
    pass


class OrderNotFoundException(APIException):
    """ Exception is raised when an order record is not found. """
    pass


class IllegalStatusTransitionException(APIException):
    """ Exception is raised when an order is moved to a status it can't reach from its current one. """
    pass


class OrderPersistenceException(APIException):
    """ Exception is raised when an order write fails and the transaction was rolled back. """
    pass


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def create_exception_handler(status_code: int, detail: Any) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exception: APIException):
        return JSONResponse(
            content={"detail": detail},
            status_code=status_code
        )

    return exception_handler
