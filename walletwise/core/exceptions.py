# ==============================================================================
# CUSTOM EXCEPTIONS - Ledger Error Hierarchy
# ==============================================================================
# Structured exception classes for consistent error handling
# Each exception maps to an HTTP status code and a machine readable code
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception for all application errors.

    Provides a consistent interface for error handling with:
    - Error code for programmatic identification
    - HTTP status code mapping
    - Detailed message and optional context

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        status_code: HTTP status code to return
        details: Additional context dictionary

    Example:
        >>> raise AppException(
        ...     message="Something went wrong",
        ...     error_code="INTERNAL_ERROR",
        ...     status_code=500
        ... )
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for JSON response.

        Returns:
            Dictionary containing error details
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"status_code={self.status_code})"
        )


# ==============================================================================
# DATABASE EXCEPTIONS
# ==============================================================================

class DatabaseError(AppException):
    """
    Base exception for database-related errors.

    Raised when a driver call fails for reasons other than a
    write conflict: connectivity loss, malformed queries, server errors.
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="DATABASE_ERROR",
            status_code=503,
            details=details,
        )


class DatabaseConnectionError(DatabaseError):
    """Raised when database connection cannot be established."""

    def __init__(
        self,
        message: str = "Failed to connect to database",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "DATABASE_CONNECTION_ERROR"


class ConflictError(AppException):
    """
    Raised when an atomic scope loses a write race.

    Covers serialization failures, deadlocks, MongoDB write conflicts and
    unique index collisions. The scope has been rolled back and the
    operation may be attempted again.

    Maps to HTTP 409 Conflict.
    """

    def __init__(
        self,
        message: str = "Concurrent modification detected",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="CONFLICT",
            status_code=409,
            details=details,
        )


class AtomicityUnsupportedError(AppException):
    """
    Raised when the configured backend cannot run multi-document transactions.

    A standalone MongoDB server is the usual cause. Nothing has been written
    when this is raised.
    """

    def __init__(
        self,
        message: str = (
            "The configured database does not support atomic multi-document "
            "transactions"
        ),
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="ATOMICITY_UNSUPPORTED",
            status_code=503,
            details=details,
        )


class CommitTimeoutError(AppException):
    """
    Raised when an atomic scope does not finish within its time bound.

    The scope has been cancelled and rolled back; clients may retry.
    """

    def __init__(
        self,
        message: str = "Ledger operation timed out",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        details: Dict[str, Any] = {"retryable": True}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=message,
            error_code="COMMIT_TIMEOUT",
            status_code=503,
            details=details,
        )


# ==============================================================================
# RESOURCE EXCEPTIONS
# ==============================================================================

class NotFoundError(AppException):
    """
    Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found. Records owned by another user are reported
    the same way as records that do not exist at all.

    Attributes:
        resource_type: Type of resource that was not found
        resource_id: Identifier of the missing resource
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ) -> None:
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = str(resource_id)

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class AlreadyExistsError(AppException):
    """
    Raised when attempting to create a resource that already exists.

    Maps to HTTP 409 Conflict.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type

        super().__init__(
            message=message,
            error_code="ALREADY_EXISTS",
            status_code=409,
            details=_details,
        )


# ==============================================================================
# VALIDATION EXCEPTIONS
# ==============================================================================

class ValidationError(AppException):
    """
    Raised when input validation fails.

    Maps to HTTP 400 Bad Request.
    `errors` maps every offending field to a message.
    """

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={"validation_errors": errors or {}},
        )
        self.errors = errors or {}


# ==============================================================================
# AUTHENTICATION EXCEPTIONS
# ==============================================================================

class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    Maps to HTTP 401 Unauthorized.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_ERROR",
            status_code=401,
            details=details,
        )


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    def __init__(
        self,
        message: str = "Token has expired",
    ) -> None:
        super().__init__(message=message)
        self.error_code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid or malformed."""

    def __init__(
        self,
        message: str = "Invalid token",
    ) -> None:
        super().__init__(message=message)
        self.error_code = "INVALID_TOKEN"
