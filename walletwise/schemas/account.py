# ==============================================================================
# ACCOUNT SCHEMAS - Wallet Holder
# ==============================================================================
# Request/Response schemas for accounts and wallet balances
# ==============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field, field_validator

from walletwise.core.constants import SecurityConstants
from walletwise.schemas.base import BaseSchema, MoneyField, TimestampSchema


class AccountCreate(BaseSchema):
    """Schema for opening an account. The balance always starts at zero."""

    email: Optional[EmailStr] = Field(
        None,
        description="Contact address (unique when given)",
    )
    full_name: Optional[str] = Field(
        None,
        max_length=255,
        description="Display name",
    )

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class AccountResponse(TimestampSchema):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    wallet_balance: MoneyField


class WalletResponse(BaseSchema):
    user_id: str
    wallet_balance: MoneyField


class ReconcileResponse(BaseSchema):
    """Balance before and after recomputation from the ledger."""

    user_id: str
    previous_balance: MoneyField
    wallet_balance: MoneyField
    difference: MoneyField


class AccountTokenResponse(BaseSchema):
    """New account together with a bearer token for it."""

    account: AccountResponse
    access_token: str
    token_type: str = SecurityConstants.TOKEN_TYPE_BEARER
