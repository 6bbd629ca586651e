"""
Protocol definition for the balance persistence adapter.

BalanceService talks to storage only through BalanceStore, so the engine
can run against any transactional backend that offers row-locked reads.
balance.repository.DjangoBalanceStore is the production implementation.

Contract:
    - Every ``*_for_update`` read and every write must be called inside
      ``atomic()``. Row locks are held until that block exits.
    - Leaving ``atomic()`` with an exception rolls back everything done
      inside it.
    - Backend failures surface as balance.exceptions.StoreUnavailable,
      never as driver exceptions.
    - ``insert_account`` raises AccountAlreadyExists when the row was
      created concurrently; the enclosing transaction stays usable.

Usage:
    from balance.protocols import BalanceStore

    def top_up(store: BalanceStore, user_id: int, amount: int) -> None:
        with store.atomic():
            account = store.get_account_for_update(user_id)
            store.update_account_balance(user_id, account.balance + amount)

Note:
    - @runtime_checkable allows isinstance() checks in tests
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import datetime
    from collections.abc import Iterable
    from contextlib import AbstractContextManager

    from balance.models import (
        Account,
        LogEntry,
        ReportEntry,
        ReserveAccount,
        ReserveDetail,
    )
    from balance.types import HistorySortField, SortDirection


@runtime_checkable
class BalanceStore(Protocol):
    """
    Protocol for balance persistence.

    Example:
        store: BalanceStore = DjangoBalanceStore(settings)
        with store.atomic():
            accounts = store.get_accounts_for_update([2, 1])
    """

    def atomic(self) -> AbstractContextManager[None]:
        """Open a transaction: commit on clean exit, roll back on exception."""
        ...

    # Accounts

    def get_account(self, user_id: int) -> Account | None:
        """Read an account without locking it."""
        ...

    def get_account_for_update(self, user_id: int) -> Account | None:
        """Read and lock an account row."""
        ...

    def get_accounts_for_update(self, user_ids: Iterable[int]) -> dict[int, Account]:
        """
        Lock several account rows in ascending id order.

        Args:
            user_ids: Users to lock (duplicates are ignored)

        Returns:
            Mapping of user id to Account for the rows that exist
        """
        ...

    def insert_account(self, user_id: int, balance: int) -> Account:
        """
        Create an account row.

        Raises:
            AccountAlreadyExists: If the row was created concurrently
        """
        ...

    def update_account_balance(self, user_id: int, balance: int) -> None:
        ...

    # Reserve accounts

    def insert_reserve_account(self, user_id: int) -> ReserveAccount:
        """Create an empty reserve account for an existing user."""
        ...

    def get_reserve_balance_for_update(self, user_id: int) -> int | None:
        """Lock a reserve account row and return its balance (None if absent)."""
        ...

    def update_reserve_balance(self, user_id: int, balance: int) -> None:
        ...

    # Reservations

    def insert_reserve_detail(
        self,
        user_id: int,
        service_id: int,
        order_id: int,
        amount: int,
        date: datetime.date,
    ) -> ReserveDetail:
        ...

    def delete_reserve_detail(
        self,
        user_id: int,
        *,
        reservation_id: int | None = None,
        service_id: int | None = None,
        order_id: int | None = None,
        amount: int | None = None,
        date: datetime.date | None = None,
    ) -> ReserveDetail | None:
        """
        Delete the oldest open reservation matching the reference.

        With ``reservation_id`` the row is matched by (id, user_id);
        otherwise every other argument must match exactly.

        Returns:
            The deleted row, or None when nothing matched
        """
        ...

    # Audit and reporting

    def insert_log_entry(
        self,
        user_id: int,
        entry_type: str,
        amount: int,
        description: str,
        date: datetime.date,
    ) -> LogEntry:
        ...

    def insert_report_entry(
        self,
        user_id: int,
        service_id: int,
        order_id: int,
        amount: int,
        date: datetime.date,
    ) -> ReportEntry:
        ...

    def get_service_title(self, service_id: int) -> str | None:
        ...

    def get_history(
        self,
        user_id: int,
        sort_field: HistorySortField,
        direction: SortDirection,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[LogEntry]:
        """Read a user's log entries in the requested order."""
        ...

    def get_report_totals(
        self, date_from: datetime.date, date_to: datetime.date
    ) -> dict[str, int]:
        """Sum confirmed amounts per service title over an inclusive date range."""
        ...
