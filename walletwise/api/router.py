# ==============================================================================
# MAIN API ROUTER - Route Aggregation
# ==============================================================================
# Combines all API version routers
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from walletwise.core.settings import settings
from walletwise.api.v1 import (
    accounts_router,
    transactions_router,
)

# Create main API router
api_router = APIRouter()

# Include v1 routers with API prefix
api_router.include_router(accounts_router, prefix=settings.API_V1_PREFIX)
api_router.include_router(transactions_router, prefix=settings.API_V1_PREFIX)
