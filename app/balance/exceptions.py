"""
Balance-specific exceptions for fund operations.

This module provides a hierarchy of exceptions for balance operations,
inheriting from the core exception categories so the DRF exception
handler can map each of them to an HTTP status.

Exception Hierarchy:
    BalanceError (base)
    ├── InvalidAmount               (ValidationError)
    ├── SelfTransfer                (ValidationError)
    ├── InvalidReservationReference (ValidationError)
    ├── InvalidReportPeriod         (ValidationError)
    ├── AccountNotFound             (NotFoundError)
    ├── ServiceNotFound             (NotFoundError)
    ├── ReservationNotFound         (NotFoundError)
    ├── NoHistory                   (NotFoundError)
    ├── InsufficientFunds           (ConflictError)
    ├── AccountAlreadyExists        (ConflictError)
    ├── StoreUnavailable            (InfrastructureError)
    └── ReportWriteError            (InfrastructureError)

Usage:
    from balance.exceptions import InsufficientFunds, AccountNotFound

    # Check balance before a debit
    if account.balance < amount:
        raise InsufficientFunds(account.id, required=amount, available=account.balance)

    # Account not found
    raise AccountNotFound(user_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


class BalanceError(BaseApplicationError):
    """
    Base exception for all balance operations.

    Every balance exception also derives from one of the core categories
    (ValidationError, NotFoundError, ConflictError, InfrastructureError),
    which decides the HTTP status it is reported with.

    Example:
        try:
            balance_service.transfer(1, 2, 500)
        except BalanceError as e:
            logger.warning(f"Transfer rejected: {e}")
    """

    default_error_code: str = "BALANCE_ERROR"


# =============================================================================
# Validation
# =============================================================================


class InvalidAmount(BalanceError, ValidationError):
    """Raised when an amount that must be positive is zero or negative."""

    default_error_code: str = "INVALID_AMOUNT"

    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(
            f"Amount must be positive, got {amount}",
            details={"amount": amount},
        )


class SelfTransfer(BalanceError, ValidationError):
    """Raised when a transfer names the same user as sender and receiver."""

    default_error_code: str = "SELF_TRANSFER"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            f"User {user_id} cannot transfer funds to themselves",
            details={"user_id": user_id},
        )


class InvalidReservationReference(BalanceError, ValidationError):
    """
    Raised when a confirm/cancel request cannot identify a reservation.

    A reservation is referenced either by its id, or by the complete
    description it was created with (service, order, amount and date).
    """

    default_error_code: str = "INVALID_RESERVATION_REFERENCE"

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Reservation reference needs reservation_id or all of: "
            + ", ".join(missing),
            details={"missing": missing},
        )


class InvalidReportPeriod(BalanceError, ValidationError):
    """Raised when a report is requested for a month that does not exist."""

    default_error_code: str = "INVALID_REPORT_PERIOD"

    def __init__(self, month: int, year: int):
        self.month = month
        self.year = year
        super().__init__(
            f"Invalid report period {month}/{year}",
            details={"month": month, "year": year},
        )


# =============================================================================
# Not found
# =============================================================================


class AccountNotFound(BalanceError, NotFoundError):
    """
    Raised when a user has no account (or no reserve account).

    Example:
        account = store.get_account(user_id)
        if account is None:
            raise AccountNotFound(user_id)
    """

    default_error_code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, user_id: int, error_code: str | None = None):
        self.user_id = user_id
        super().__init__(
            f"User {user_id} not found",
            error_code=error_code,
            details={"user_id": user_id},
        )


class ServiceNotFound(BalanceError, NotFoundError):
    """Raised when a service id is not present in the catalog."""

    default_error_code: str = "SERVICE_NOT_FOUND"

    def __init__(self, service_id: int):
        self.service_id = service_id
        super().__init__(
            f"Service {service_id} not found",
            details={"service_id": service_id},
        )


class ReservationNotFound(BalanceError, NotFoundError):
    """
    Raised when no open reservation matches a confirm/cancel request.

    This is what stops a user from cancelling (and being refunded) funds
    that were never held, and makes a repeated confirm/cancel fail.
    """

    default_error_code: str = "RESERVATION_NOT_FOUND"

    def __init__(self, user_id: int, details: dict[str, Any] | None = None):
        self.user_id = user_id
        full_details: dict[str, Any] = {"user_id": user_id}
        if details:
            full_details.update(details)
        super().__init__(
            f"No open reservation for user {user_id} matches the request",
            details=full_details,
        )


class NoHistory(BalanceError, NotFoundError):
    """Raised when a user has no audit log entries."""

    default_error_code: str = "NO_HISTORY"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            f"User {user_id} has no history",
            details={"user_id": user_id},
        )


# =============================================================================
# Conflict
# =============================================================================


class InsufficientFunds(BalanceError, ConflictError):
    """
    Raised when an account has insufficient funds for an operation.

    Stores the user ID, required amount, and available balance
    for detailed error reporting.

    Attributes:
        user_id: The user whose balance is too low
        required: The amount that was required
        available: The balance that was available

    Example:
        if account.balance < amount:
            raise InsufficientFunds(
                account.id,
                required=amount,
                available=account.balance,
            )
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"

    def __init__(
        self,
        user_id: int,
        required: int,
        available: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize with account details and amounts.

        Args:
            user_id: User with insufficient funds
            required: Amount required in minor units
            available: Balance available in minor units
            error_code: Optional custom error code
            details: Optional additional error context
        """
        self.user_id = user_id
        self.required = required
        self.available = available

        message = (
            f"User {user_id} has insufficient funds: "
            f"required {required}, available {available}"
        )

        full_details: dict[str, Any] = {
            "user_id": user_id,
            "required": required,
            "available": available,
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )


class AccountAlreadyExists(BalanceError, ConflictError):
    """
    Raised by the store when a concurrent request created the account first.

    The service catches this and retries the top-up on the existing row;
    it does not reach API clients.
    """

    default_error_code: str = "ACCOUNT_ALREADY_EXISTS"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            f"Account for user {user_id} already exists",
            details={"user_id": user_id},
        )


# =============================================================================
# Infrastructure
# =============================================================================


class StoreUnavailable(BalanceError, InfrastructureError):
    """
    Raised when the database fails underneath a balance operation.

    Covers lost connections, lock wait timeouts and constraint violations.
    The driver exception is chained as __cause__; the surrounding
    transaction has been rolled back by the time this is seen.
    """

    default_error_code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Balance store failed during {operation}",
            details={"operation": operation},
        )


class ReportWriteError(BalanceError, InfrastructureError):
    """Raised when a report file cannot be written to disk."""

    default_error_code: str = "REPORT_WRITE_ERROR"

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            "Report file could not be written",
            details={"path": path},
        )
