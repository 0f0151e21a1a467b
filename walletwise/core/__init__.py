# ==============================================================================
# CORE PACKAGE INITIALIZATION
# ==============================================================================
# Core utilities: Settings, Security, Exceptions, Constants, Logging
# ==============================================================================

"""
Core Module
===========

Contains core utilities and configurations for the ledger:
- settings: Environment configuration management
- security: JWT bearer token verification
- exceptions: Custom exception classes
- constants: Ledger enumerations and limits
- logging: Logger tree setup
"""

from walletwise.core.settings import settings, get_settings, DatabaseType
from walletwise.core.exceptions import (
    AppException,
    DatabaseError,
    ConflictError,
    AtomicityUnsupportedError,
    CommitTimeoutError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
)

__all__ = [
    "settings",
    "get_settings",
    "DatabaseType",
    "AppException",
    "DatabaseError",
    "ConflictError",
    "AtomicityUnsupportedError",
    "CommitTimeoutError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
]
