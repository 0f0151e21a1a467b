# ==============================================================================
# MIDDLEWARE PACKAGE INITIALIZATION
# ==============================================================================

"""
Middleware Module
=================

FastAPI middleware implementations:
- Request logging with request ID propagation
"""

from walletwise.middleware.request_logger import RequestLoggerMiddleware

__all__ = [
    "RequestLoggerMiddleware",
]
