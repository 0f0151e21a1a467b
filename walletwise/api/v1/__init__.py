# ==============================================================================
# API V1 ENDPOINTS PACKAGE
# ==============================================================================

"""
API V1 Endpoints
================

Version 1 API endpoint implementations.
"""

from walletwise.api.v1.accounts import router as accounts_router
from walletwise.api.v1.transactions import router as transactions_router

__all__ = [
    "accounts_router",
    "transactions_router",
]
