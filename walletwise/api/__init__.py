# ==============================================================================
# API PACKAGE INITIALIZATION
# ==============================================================================

"""
API Module
==========

FastAPI routers and endpoint definitions:
- Dependencies: Bearer authentication, service access
- Routers: Accounts, Transactions
"""

from walletwise.api.router import api_router

__all__ = ["api_router"]
