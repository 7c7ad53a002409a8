from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator, Optional

from ..enums import UserRole
from ..exceptions import AuthenticationRequiredException, ForbiddenException
from ..db.database import AsyncSessionLocal
from ..models.user import User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Asynchronous dependency that provides a database session for FastAPI routes.

    Yields:
        AsyncSession: An instance of the asynchronous database session.

    Usage:
        Use as a dependency in FastAPI endpoints to access the database session.
        The session is automatically closed after the request is processed.
    """

    async with AsyncSessionLocal() as db:
        yield db


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_db),
) -> User:
    """
    Retrieve the current user from the id the auth gateway put in ``X-User-Id``.

    Sign-in itself happens at the hosted auth provider; by the time a request
    reaches this service the header has already been verified upstream.

    Raises:
        AuthenticationRequiredException: If the header is missing or names no known user.
    """
    if not x_user_id:
        raise AuthenticationRequiredException()

    user = await session.get(User, x_user_id)
    if not user:
        raise AuthenticationRequiredException()

    return user


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.role == UserRole.ADMIN:
        raise ForbiddenException(detail="Only admins can access this resource!")

    return user
