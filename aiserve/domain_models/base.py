# ==============================================================================
# BASE MODEL - SQLAlchemy Foundation
# ==============================================================================
# Base declarative class and common mixins for all SQL models
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, MetaData, func, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints (stable names for migrations)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class SQLBase(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Provides a common foundation with:
    - Automatic UUID primary key generation
    - Dictionary serialization method

    Example:
        >>> class ModelEndpoint(SQLBase):
        ...     __tablename__ = "model_endpoints"
        ...     name: Mapped[str] = mapped_column(String(100))
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model instance to a dictionary of column values."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class TimestampMixin:
    """
    Mixin providing automatic timestamp tracking.

    Attributes:
        created_at: Timestamp of record creation (auto-set)
        updated_at: Timestamp of last update (auto-updated)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
