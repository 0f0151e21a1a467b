# ==============================================================================
# USER MODEL - Wallet Holder
# ==============================================================================
# Account record carrying the running wallet balance
# ==============================================================================

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from walletwise.domain_models.base import Money, SQLBase, TimestampMixin


class User(SQLBase, TimestampMixin):
    """
    Wallet holder.

    Credentials live with the identity provider; this table only keeps
    the profile fields the ledger echoes back and the balance accumulator.

    Attributes:
        email: Optional unique contact address
        full_name: Display name
        wallet_balance: Σ income − Σ expense over the user's transactions
    """

    __tablename__ = "users"

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    wallet_balance: Mapped[Decimal] = mapped_column(
        Money(),
        default=Decimal("0.00"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, wallet_balance={self.wallet_balance})>"
