# ==============================================================================
# UTILS PACKAGE INITIALIZATION
# ==============================================================================

"""
Utilities Module
================

Helper functions and utilities:
- Pagination helpers
- Money and UTC time normalization
- Recurrence interval arithmetic
"""

from walletwise.utils.helpers import (
    generate_uuid,
    paginate_results,
    quantize_money,
    utc_now,
)
from walletwise.utils.recurrence import advance

__all__ = [
    "generate_uuid",
    "paginate_results",
    "quantize_money",
    "utc_now",
    "advance",
]
