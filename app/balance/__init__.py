"""
Balance - User funds, reservations and revenue reporting.

This app tracks a spendable balance and a reserved sub-balance per user.
Every change runs in a database transaction with row locks, so balances
never go negative and every movement is recorded in the audit log.

Public API:
    Service (import from balance.services):
        BalanceService - All balance operations

    Models (import from balance.models):
        Account, ReserveAccount, ReserveDetail, LogEntry, ReportEntry,
        Service, LogEntryType

    Types (import from balance.types):
        ReservationParams - Reference to an open reservation
        TransferResult, MonthlyReport, ReportFile

    Exceptions (importable from balance):
        BalanceError - Base exception for balance operations
        AccountNotFound, ServiceNotFound, ReservationNotFound, NoHistory
        InsufficientFunds, InvalidAmount, SelfTransfer

Usage:
    from balance.services import BalanceService
    from balance.types import ReservationParams
    from balance import InsufficientFunds

    service = BalanceService.from_settings()
    service.replenish(1, 100)

    try:
        reservation = service.reserve(1, service_id=1, order_id=12, amount=40)
    except InsufficientFunds as e:
        print(f"Need {e.required}, have {e.available}")

    service.confirm(ReservationParams(user_id=1, reservation_id=reservation.id))

Note:
    Models and the service are NOT imported here to avoid AppRegistryNotReady
    errors. Import them directly from their modules.
"""

from .exceptions import (
    AccountNotFound,
    BalanceError,
    InsufficientFunds,
    InvalidAmount,
    NoHistory,
    ReservationNotFound,
    SelfTransfer,
    ServiceNotFound,
)

__all__ = [
    "BalanceError",
    "AccountNotFound",
    "ServiceNotFound",
    "ReservationNotFound",
    "NoHistory",
    "InsufficientFunds",
    "InvalidAmount",
    "SelfTransfer",
]
