# ==============================================================================
# BASE MODEL - SQLAlchemy Foundation
# ==============================================================================
# Base declarative class, column types and common mixins for SQL models
# ==============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from walletwise.utils.helpers import generate_uuid, quantize_money, to_utc, utc_now


# ==============================================================================
# COLUMN TYPES
# ==============================================================================

class UTCDateTime(TypeDecorator):
    """
    Timestamp stored as naive UTC, returned as aware UTC.

    SQLite keeps no offset, so all values are normalized on the way in
    and tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return to_utc(value).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Money(TypeDecorator):
    """
    Two-place decimal stored as integer cents.

    Integer storage keeps ``balance + delta`` exact on every dialect,
    including SQLite which has no native decimal.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[int]:
        if value is None:
            return None
        return int(quantize_money(value).scaleb(2))

    def process_result_value(self, value: Optional[int], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return quantize_money(Decimal(value).scaleb(-2))


# ==============================================================================
# DECLARATIVE BASE
# ==============================================================================

class SQLBase(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Provides a common foundation with:
    - Automatic UUID primary key generation
    - Dictionary serialization method

    Example:
        >>> class User(SQLBase):
        ...     __tablename__ = "users"
        ...     email: Mapped[str] = mapped_column(String(255))
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary with all column values
        """
        return {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        return f"<{class_name}(id={self.id})>"


class TimestampMixin:
    """
    Mixin providing automatic timestamp tracking.

    Values are produced in Python so that every dialect stores the same
    millisecond-precision UTC instant.

    Attributes:
        created_at: Timestamp of record creation (auto-set)
        updated_at: Timestamp of last update (auto-updated)
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
