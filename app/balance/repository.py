"""
Django ORM implementation of the balance store.

DjangoBalanceStore implements balance.protocols.BalanceStore on top of
the Django ORM. Locking reads use SELECT ... FOR UPDATE, which PostgreSQL
honours and SQLite ignores (SQLite serialises writers on the whole
database instead).

Usage:
    from balance.conf import BalanceSettings
    from balance.repository import DjangoBalanceStore

    store = DjangoBalanceStore(BalanceSettings.from_django())
    with store.atomic():
        account = store.get_account_for_update(1)

Error Handling:
    Every DatabaseError leaving a public method is re-raised as
    StoreUnavailable with the original error chained. The one exception
    is the unique-key race in insert_account, which is reported as
    AccountAlreadyExists.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from .conf import BalanceSettings
from .exceptions import AccountAlreadyExists, StoreUnavailable
from .models import (
    Account,
    LogEntry,
    ReportEntry,
    ReserveAccount,
    ReserveDetail,
    Service,
)
from .types import HistorySortField, SortDirection

if TYPE_CHECKING:
    import datetime
    from collections.abc import Callable, Iterable, Iterator
    from typing import Any, TypeVar

    T = TypeVar("T")

logger = logging.getLogger(__name__)


def translate_errors(func: Callable[..., T]) -> Callable[..., T]:
    """Re-raise DatabaseError from a store method as StoreUnavailable."""

    @functools.wraps(func)
    def wrapper(self: DjangoBalanceStore, *args: Any, **kwargs: Any) -> T:
        try:
            return func(self, *args, **kwargs)
        except DatabaseError as exc:
            logger.error(
                f"Balance store error in {func.__name__}: {exc}",
                extra={"operation": func.__name__, "database": self.using},
            )
            raise StoreUnavailable(func.__name__) from exc

    return wrapper


class DjangoBalanceStore:
    """
    Balance store backed by the Django ORM.

    Attributes:
        using: Database alias every query runs against
    """

    def __init__(self, settings: BalanceSettings | None = None):
        self.settings = settings or BalanceSettings.from_django()
        self.using = self.settings.database_alias

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run the block in a transaction on the configured database.

        Nested calls become savepoints. A DatabaseError raised on commit
        is translated like any other store failure.
        """
        try:
            with transaction.atomic(using=self.using):
                yield
        except DatabaseError as exc:
            logger.error(
                f"Balance transaction failed: {exc}",
                extra={"database": self.using},
            )
            raise StoreUnavailable("transaction") from exc

    # =========================================================================
    # Accounts
    # =========================================================================

    @translate_errors
    def get_account(self, user_id: int) -> Account | None:
        return Account.objects.using(self.using).filter(id=user_id).first()

    @translate_errors
    def get_account_for_update(self, user_id: int) -> Account | None:
        return (
            Account.objects.using(self.using)
            .select_for_update()
            .filter(id=user_id)
            .first()
        )

    @translate_errors
    def get_accounts_for_update(self, user_ids: Iterable[int]) -> dict[int, Account]:
        # ORDER BY id makes every transaction acquire row locks in the same order
        return {
            account.id: account
            for account in Account.objects.using(self.using)
            .select_for_update()
            .filter(id__in=set(user_ids))
            .order_by("id")
        }

    @translate_errors
    def insert_account(self, user_id: int, balance: int) -> Account:
        try:
            with transaction.atomic(using=self.using):
                return Account.objects.using(self.using).create(
                    id=user_id, balance=balance
                )
        except IntegrityError:
            # Savepoint rolled back; the outer transaction is still usable
            raise AccountAlreadyExists(user_id)

    @translate_errors
    def update_account_balance(self, user_id: int, balance: int) -> None:
        Account.objects.using(self.using).filter(id=user_id).update(
            balance=balance, updated_at=timezone.now()
        )

    # =========================================================================
    # Reserve accounts
    # =========================================================================

    @translate_errors
    def insert_reserve_account(self, user_id: int) -> ReserveAccount:
        return ReserveAccount.objects.using(self.using).create(
            user_id=user_id, balance=0
        )

    @translate_errors
    def get_reserve_balance_for_update(self, user_id: int) -> int | None:
        return (
            ReserveAccount.objects.using(self.using)
            .select_for_update()
            .filter(user_id=user_id)
            .values_list("balance", flat=True)
            .first()
        )

    @translate_errors
    def update_reserve_balance(self, user_id: int, balance: int) -> None:
        ReserveAccount.objects.using(self.using).filter(user_id=user_id).update(
            balance=balance, updated_at=timezone.now()
        )

    # =========================================================================
    # Reservations
    # =========================================================================

    @translate_errors
    def insert_reserve_detail(
        self,
        user_id: int,
        service_id: int,
        order_id: int,
        amount: int,
        date: datetime.date,
    ) -> ReserveDetail:
        return ReserveDetail.objects.using(self.using).create(
            user_id=user_id,
            service_id=service_id,
            order_id=order_id,
            amount=amount,
            date=date,
        )

    @translate_errors
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
        queryset = ReserveDetail.objects.using(self.using).filter(user_id=user_id)
        if reservation_id is not None:
            queryset = queryset.filter(id=reservation_id)
        else:
            queryset = queryset.filter(
                service_id=service_id,
                order_id=order_id,
                amount=amount,
                date=date,
            )

        # One row per call, so identical duplicates are consumed one at a time
        detail = queryset.select_for_update().order_by("id").first()
        if detail is None:
            return None

        ReserveDetail.objects.using(self.using).filter(id=detail.id).delete()
        return detail

    # =========================================================================
    # Audit and reporting
    # =========================================================================

    @translate_errors
    def insert_log_entry(
        self,
        user_id: int,
        entry_type: str,
        amount: int,
        description: str,
        date: datetime.date,
    ) -> LogEntry:
        return LogEntry.objects.using(self.using).create(
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            description=description,
            date=date,
        )

    @translate_errors
    def insert_report_entry(
        self,
        user_id: int,
        service_id: int,
        order_id: int,
        amount: int,
        date: datetime.date,
    ) -> ReportEntry:
        return ReportEntry.objects.using(self.using).create(
            user_id=user_id,
            service_id=service_id,
            order_id=order_id,
            amount=amount,
            date=date,
        )

    @translate_errors
    def get_service_title(self, service_id: int) -> str | None:
        return (
            Service.objects.using(self.using)
            .filter(id=service_id)
            .values_list("title", flat=True)
            .first()
        )

    @translate_errors
    def get_history(
        self,
        user_id: int,
        sort_field: HistorySortField,
        direction: SortDirection,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[LogEntry]:
        prefix = "-" if direction == SortDirection.DESC else ""
        field = "date" if sort_field == HistorySortField.DATE else "amount"

        # id breaks ties so paging through equal values is stable
        queryset = (
            LogEntry.objects.using(self.using)
            .filter(user_id=user_id)
            .order_by(f"{prefix}{field}", f"{prefix}id")
        )
        if limit is not None:
            return list(queryset[offset : offset + limit])
        return list(queryset[offset:])

    @translate_errors
    def get_report_totals(
        self, date_from: datetime.date, date_to: datetime.date
    ) -> dict[str, int]:
        rows = (
            ReportEntry.objects.using(self.using)
            .filter(date__range=(date_from, date_to))
            .values("service__title")
            .annotate(total=Sum("amount"))
            .order_by("service__title")
        )
        return {row["service__title"]: row["total"] for row in rows}
