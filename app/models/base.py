from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(DeclarativeBase):
    """Base class that sets naming convention for tables."""

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[misc]
        return cls.__name__.lower()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())


class SoftDeleteMixin:
    """Rows are never physically removed; queries must filter on ``deleted_at``."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)


def enum_type(enum_cls) -> SQLEnum:
    """Store a Python enum by value in a plain VARCHAR column."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )
