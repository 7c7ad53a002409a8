from sqlalchemy import Column, DateTime

from ..db.base import Base
from ..utils.time import utcnow


class TimeStampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=True)


__all__ = ["Base", "TimeStampMixin"]
