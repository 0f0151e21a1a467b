# ==============================================================================
# HELPER UTILITIES
# ==============================================================================
# Common utility functions used across the application
# ==============================================================================

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, TypeVar
from uuid import uuid4

from walletwise.core.constants import LedgerConstants

T = TypeVar("T")


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


# ==============================================================================
# TIME
# ==============================================================================

def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC with millisecond precision.

    Naive values are taken to be UTC already. Every backend stores at most
    millisecond precision, so truncating here keeps round trips exact.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    """Get current UTC datetime, truncated to milliseconds."""
    return to_utc(datetime.now(timezone.utc))


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a listing range bound.

    Accepts a bare date (``2024-01-31``) or an ISO-8601 datetime, with a
    trailing ``Z`` allowed. A bare date expands to the start of the day, or
    to 23:59:59.999 of that day when ``end_of_day`` is set.

    Raises:
        ValueError: If the value is not a date or datetime
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("Date must be an ISO-8601 string")

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    if len(text) == 10:
        day = date.fromisoformat(text)
        if end_of_day:
            moment = datetime.combine(day, time(23, 59, 59, 999000))
        else:
            moment = datetime.combine(day, time.min)
        return moment.replace(tzinfo=timezone.utc)

    parsed = to_utc(datetime.fromisoformat(text))
    if end_of_day and parsed.time() == time.min:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999000)
    return parsed


# ==============================================================================
# MONEY
# ==============================================================================

def quantize_money(value: Any) -> Decimal:
    """
    Convert to a Decimal rounded half-up to two places.

    Floats go through ``str`` so that 0.1 stays 0.1.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(LedgerConstants.AMOUNT_PLACES, rounding=ROUND_HALF_UP)


def signed_amount(transaction_type: str, amount: Decimal) -> Decimal:
    """Contribution of one ledger entry to the wallet balance."""
    return amount if transaction_type == "income" else -amount


# ==============================================================================
# PAGINATION
# ==============================================================================

def paginate_results(
    items: List[T],
    page: int,
    limit: int,
    total: int,
) -> Dict[str, Any]:
    """
    Create a pagination response dict.

    Args:
        items: List of items for current page
        page: Current page number (1-indexed)
        limit: Items per page
        total: Total item count

    Returns:
        Pagination metadata dict
    """
    pages = math.ceil(total / limit) if total > 0 else 0

    return {
        "items": items,
        "total": total,
        "page": page,
        "pages": pages,
        "limit": limit,
    }


def calculate_offset(page: int, limit: int) -> int:
    """Calculate database offset from page number."""
    return (page - 1) * limit
