"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the API
- Machine-readable error codes for client handling
- A clear split between business rejections and infrastructure failures

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Business-level input rejections
    ├── NotFoundError - Resource not found
    ├── ConflictError - Operation conflicts with current state
    └── InfrastructureError - Backing store or filesystem failures

Usage:
    from core.exceptions import NotFoundError, ConflictError

    # Raise with message only
    raise NotFoundError("User 42 not found")

    # Raise with error code and details
    raise ConflictError(
        "Insufficient funds",
        error_code="INSUFFICIENT_FUNDS",
        details={"required": 500, "available": 120},
    )

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, parsing, etc.).
    core.exception_handler maps each category to an HTTP status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Provides a consistent interface for error handling across the application.
    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, etc.)

    Example:
        try:
            account = balance_service.get_balance(user_id)
        except NotFoundError as e:
            logger.warning(f"Account not found: {e.error_code}")
            return Response(e.to_dict(), status=404)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and details keys

        Example:
            {
                "error": "User 42 not found",
                "error_code": "ACCOUNT_NOT_FOUND",
                "details": {"user_id": 42}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when a request is rejected on business grounds before any change.

    Use for:
    - Non-positive amounts reaching the service layer
    - Self-referencing operations (transfer to yourself)
    - Incomplete references that cannot identify a record

    Example:
        if amount <= 0:
            raise ValidationError(
                "Amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"amount": amount},
            )

    Note:
        For request-shape validation, use DRF serializers.
        Use this for service-layer re-checks.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for:
    - Database record not found
    - Catalog entry not found
    - Empty result sets that the caller must treat as an error

    Example:
        account = Account.objects.filter(id=user_id).first()
        if not account:
            raise NotFoundError(
                f"User {user_id} not found",
                error_code="ACCOUNT_NOT_FOUND",
                details={"user_id": user_id},
            )
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    Use for:
    - Balance checks that fail against the locked row
    - Duplicate entries (unique constraint violations)
    - Concurrent creation races

    Example:
        if account.balance < amount:
            raise ConflictError(
                "Insufficient funds",
                error_code="INSUFFICIENT_FUNDS",
                details={"required": amount, "available": account.balance},
            )

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"


class InfrastructureError(BaseApplicationError):
    """
    Raised when backing infrastructure fails.

    Use for:
    - Lost database connections, lock wait timeouts, constraint failures
    - Filesystem errors while writing generated files

    Example:
        try:
            ...
        except DatabaseError as exc:
            raise InfrastructureError(
                "Database unavailable",
                error_code="STORE_UNAVAILABLE",
                details={"operation": "transfer"},
            ) from exc

    Note:
        Log the original error for debugging but don't expose
        internal details to clients. HTTP 503 is appropriate.
    """

    default_error_code: str = "INFRASTRUCTURE_ERROR"
