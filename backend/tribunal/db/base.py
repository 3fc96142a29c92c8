"""
SQLAlchemy Base class for all models.
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import DateTime, Enum as SQLEnum, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tribunal.core.utils import new_id, utcnow


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # UUIDv4 string keys
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


def enum_type(enum_cls: type[PyEnum], length: int = 30) -> SQLEnum:
    """String-backed enum column that persists member values, not names."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
