from datetime import datetime, timezone

from sqlalchemy.orm import as_declarative, declared_attr
from sqlalchemy.orm import mapped_column
from sqlalchemy import DateTime


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@as_declarative()
class Base:
    __abstract__ = True  # Prevents creating a table for the base class

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    created_at = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
