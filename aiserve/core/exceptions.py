# ==============================================================================
# CUSTOM EXCEPTIONS - Application Error Hierarchy
# ==============================================================================
# Structured exception classes for consistent error handling
# Each exception maps to an HTTP status code at the API boundary
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import exc as sa_exc


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
        retryable: Whether the caller may retry the same operation
    """

    retryable: bool = False

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

    Raised when database operations fail due to:
    - Connection issues
    - Query execution failures
    - Transaction errors
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


class ConnectionError(DatabaseError):
    """
    Raised when the pool cannot supply a connection.

    Covers both pool exhaustion (no connection freed up within the
    pool timeout) and connection-establishment failures. The manager
    never retries on its own; callers may.
    """

    retryable = True

    def __init__(
        self,
        message: str = "Failed to connect to database",
        retry_after: Optional[int] = 1,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        if retry_after is not None:
            _details["retry_after_seconds"] = retry_after
        super().__init__(message=message, details=_details)
        self.error_code = "DATABASE_CONNECTION_ERROR"
        self.retry_after = retry_after


class PersistenceError(DatabaseError):
    """
    Raised when the backing store rejects a query or a commit.

    The originating driver/ORM exception is kept as ``__cause__``.
    Integrity violations map to 409, everything else to 500.
    """

    def __init__(
        self,
        message: str = "Persistence operation failed",
        details: Optional[Dict[str, Any]] = None,
        integrity_violation: bool = False,
    ) -> None:
        super().__init__(message=message, details=details)
        self.integrity_violation = integrity_violation
        if integrity_violation:
            self.error_code = "INTEGRITY_ERROR"
            self.status_code = 409
        else:
            self.error_code = "PERSISTENCE_ERROR"
            self.status_code = 500

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        stage: str,
    ) -> "PersistenceError":
        """Build a PersistenceError describing a driver/ORM failure."""
        integrity = isinstance(error, sa_exc.IntegrityError)
        orig = getattr(error, "orig", None)
        return cls(
            message=f"Database {stage} failed: {orig or error}",
            details={"stage": stage, "cause": type(error).__name__},
            integrity_violation=integrity,
        )


class ProgrammingError(AppException):
    """
    Raised on caller misuse of a unit of work.

    Double release, use of a closed unit of work, or any illegal
    state transition. Always a defect in calling code.
    """

    def __init__(
        self,
        message: str = "Invalid use of unit of work",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="PROGRAMMING_ERROR",
            status_code=500,
            details=details,
        )


# ==============================================================================
# RESOURCE EXCEPTIONS
# ==============================================================================

class NotFoundError(AppException):
    """
    Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found.
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
# REQUEST EXCEPTIONS
# ==============================================================================

class BadRequestError(AppException):
    """
    Raised for requests that are well-formed but cannot be served.

    Maps to HTTP 400 Bad Request.
    """

    def __init__(
        self,
        message: str = "Bad request",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="BAD_REQUEST",
            status_code=400,
            details=details,
        )


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


class AuthorizationError(AppException):
    """
    Raised when a client lacks permission for an action.

    Maps to HTTP 403 Forbidden.
    """

    def __init__(
        self,
        message: str = "Permission denied",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="AUTHORIZATION_ERROR",
            status_code=403,
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
