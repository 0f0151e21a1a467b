# ==============================================================================
# TRANSACTION MODEL - Ledger Entry
# ==============================================================================
# One income or expense record; recurring templates carry a schedule
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from walletwise.core.constants import LedgerConstants
from walletwise.domain_models.base import Money, SQLBase, TimestampMixin, UTCDateTime
from walletwise.utils.helpers import utc_now


class Transaction(SQLBase, TimestampMixin):
    """
    Ledger entry owned by exactly one user.

    Enumerated fields are stored as plain strings; membership is enforced
    by the request schemas before anything reaches the table.

    Attributes:
        user_id: Owner, immutable
        type: income or expense
        amount: Positive two-place amount
        category: Normalized category label
        description: Optional free text
        payment_method: cash, card, upi or online
        mood: Spending mood tag
        date: When the money moved (independent of created_at)
        is_recurring: Template flag
        recurring_interval: daily, weekly or monthly for templates
        next_execution_date: Next due occurrence for templates
        idempotency_key: Client supplied deduplication key
    """

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_type_date", "user_id", "type", "date"),
        Index("ix_transactions_user_category", "user_id", "category"),
        Index("ix_transactions_user_description", "user_id", "description"),
        Index("ix_transactions_due", "is_recurring", "next_execution_date"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_transactions_user_idempotency_key"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(
        String(LedgerConstants.MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    payment_method: Mapped[str] = mapped_column(
        String(16),
        default="cash",
        nullable=False,
    )
    mood: Mapped[str] = mapped_column(
        String(16),
        default="neutral",
        nullable=False,
    )
    date: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utc_now,
        nullable=False,
    )

    # Recurrence
    is_recurring: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    recurring_interval: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
    )
    next_execution_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(LedgerConstants.MAX_IDEMPOTENCY_KEY_LENGTH),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.type}, amount={self.amount})>"
