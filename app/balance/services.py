"""
Balance service layer for fund operations.

This module provides the BalanceService class which encapsulates all
business logic for balances. Every balance change goes through this
service so locking, validation and audit logging happen in one place.

Usage:
    from balance.services import BalanceService
    from balance.types import ReservationParams

    service = BalanceService.from_settings()

    service.replenish(1, 100, date="2022-10-01")
    reservation = service.reserve(1, service_id=1, order_id=12, amount=40)
    service.confirm(ReservationParams(user_id=1, reservation_id=reservation.id))

Locking:
    Each mutation runs in one transaction and locks rows in a fixed order:
    Account rows (ascending user id), then the ReserveAccount row, then
    the ReserveDetail row. Concurrent operations on the same user
    serialise on these locks; operations on different users don't block
    each other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError
from core.services import BaseService

from .conf import BalanceSettings
from .exceptions import (
    AccountAlreadyExists,
    AccountNotFound,
    InsufficientFunds,
    InvalidAmount,
    InvalidReportPeriod,
    InvalidReservationReference,
    NoHistory,
    ReservationNotFound,
    SelfTransfer,
    ServiceNotFound,
)
from .models import LogEntryType
from .reports import ReportWriter, month_bounds
from .repository import DjangoBalanceStore
from .types import (
    HistorySortField,
    MonthlyReport,
    SortDirection,
    TransferResult,
    coerce_date,
)

if TYPE_CHECKING:
    import datetime

    from .models import Account, LogEntry, ReportEntry, ReserveDetail
    from .protocols import BalanceStore
    from .types import ReportFile, ReservationParams

    DateInput = datetime.date | str | None


TOP_UP_DESCRIPTION = "Balance top-up"


class BalanceService(BaseService):
    """
    Service class for balance operations.

    Key features:
    - One transaction per mutation, rolled back on any failure
    - Row locks taken in a fixed global order to avoid deadlocks
    - Business rules re-checked here even when the caller validated input
    - Exactly one audit log entry per affected user and event

    Attributes:
        settings: Engine configuration
        store: Persistence adapter (BalanceStore)
        writer: Report file writer
    """

    def __init__(
        self,
        store: BalanceStore | None = None,
        settings: BalanceSettings | None = None,
        writer: ReportWriter | None = None,
    ):
        self.settings = settings or BalanceSettings.from_django()
        self.store = store or DjangoBalanceStore(self.settings)
        self.writer = writer or ReportWriter(self.settings)

    @classmethod
    def from_settings(cls) -> BalanceService:
        """Build a service wired to the Django database and reports directory."""
        return cls(settings=BalanceSettings.from_django())

    # =========================================================================
    # Helpers
    # =========================================================================

    @classmethod
    def _rejected(
        cls, operation: str, exc: BaseApplicationError
    ) -> BaseApplicationError:
        """Log a business rejection and hand the exception back for raising."""
        cls.get_logger().warning(
            f"{operation} rejected: {exc.message}",
            extra={"operation": operation, "error_code": exc.error_code, **exc.details},
        )
        return exc

    def _check_amount(self, operation: str, amount: int) -> None:
        if amount <= 0:
            raise self._rejected(operation, InvalidAmount(amount))

    def _service_title(self, operation: str, service_id: int) -> str:
        title = self.store.get_service_title(service_id)
        if title is None:
            raise self._rejected(operation, ServiceNotFound(service_id))
        return title

    def _check_reference(self, operation: str, params: ReservationParams) -> None:
        missing = params.missing_fields
        if missing:
            raise self._rejected(operation, InvalidReservationReference(missing))
        if params.amount is not None:
            self._check_amount(operation, params.amount)

    def _take_reservation(
        self, operation: str, params: ReservationParams
    ) -> ReserveDetail:
        """Delete the referenced reservation inside the current transaction."""
        detail = self.store.delete_reserve_detail(
            params.user_id,
            reservation_id=params.reservation_id,
            service_id=params.service_id,
            order_id=params.order_id,
            amount=params.amount,
            date=params.date,
        )
        if detail is None:
            raise self._rejected(
                operation,
                ReservationNotFound(
                    params.user_id,
                    details={
                        "reservation_id": params.reservation_id,
                        "service_id": params.service_id,
                        "order_id": params.order_id,
                    },
                ),
            )
        return detail

    # =========================================================================
    # Reads
    # =========================================================================

    def get_balance(self, user_id: int) -> Account:
        """
        Get a user's account.

        Args:
            user_id: User to look up

        Returns:
            The Account (balance is the spendable amount)

        Raises:
            AccountNotFound: If the user has no account
        """
        account = self.store.get_account(user_id)
        if account is None:
            raise AccountNotFound(user_id)
        return account

    def get_history(
        self,
        user_id: int,
        sort_field: str = HistorySortField.AMOUNT,
        direction: str = SortDirection.ASC,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[LogEntry]:
        """
        List a user's audit log.

        Unrecognised sort fields or directions fall back to amount/asc.
        Entries with equal sort values are ordered by id.

        Args:
            user_id: User whose history to read
            sort_field: "date" or "amount"
            direction: "asc" or "desc"
            limit: Maximum number of entries (None for all)
            offset: Number of entries to skip

        Returns:
            Log entries in the requested order

        Raises:
            NoHistory: If the requested page is empty
        """
        sort_key = str(sort_field or "").lower()
        direction_key = str(direction or "").lower()
        field = (
            HistorySortField(sort_key)
            if sort_key in HistorySortField.values
            else HistorySortField.AMOUNT
        )
        order = (
            SortDirection(direction_key)
            if direction_key in SortDirection.values
            else SortDirection.ASC
        )

        entries = self.store.get_history(
            user_id, field, order, limit=limit, offset=max(offset, 0)
        )
        if not entries:
            raise NoHistory(user_id)
        return entries

    # =========================================================================
    # Mutations
    # =========================================================================

    def replenish(self, user_id: int, amount: int, date: DateInput = None) -> Account:
        """
        Deposit funds, creating the account on first use.

        An unknown user id gets a new Account holding ``amount`` plus an
        empty ReserveAccount. If another request creates the same account
        concurrently, the deposit is applied to that row instead.

        Args:
            user_id: User to credit
            amount: Positive amount in minor units
            date: Business date (defaults to today)

        Returns:
            The Account after the deposit

        Raises:
            InvalidAmount: If amount is not positive
        """
        self._check_amount("replenish", amount)
        when = coerce_date(date)

        with self.store.atomic():
            account = self.store.get_account_for_update(user_id)
            created = False

            if account is None:
                try:
                    account = self.store.insert_account(user_id, amount)
                except AccountAlreadyExists:
                    # Lost the creation race; wait for the winner's row lock
                    account = self.store.get_account_for_update(user_id)
                    if account is None:
                        raise AccountNotFound(user_id)
                else:
                    self.store.insert_reserve_account(user_id)
                    created = True

            if not created:
                account.balance += amount
                self.store.update_account_balance(user_id, account.balance)

            self.store.insert_log_entry(
                user_id, LogEntryType.TOP_UP, amount, TOP_UP_DESCRIPTION, when
            )

        self.get_logger().info(
            f"Balance replenished for user {user_id}",
            extra={
                "user_id": user_id,
                "amount": amount,
                "balance": account.balance,
                "account_created": created,
            },
        )
        return account

    def transfer(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: int,
        date: DateInput = None,
    ) -> TransferResult:
        """
        Move funds from one user to another.

        Both accounts are locked (lower id first) before either is
        changed, so the sufficiency check can't be invalidated by a
        concurrent operation.

        Args:
            from_user_id: Sender
            to_user_id: Receiver
            amount: Positive amount in minor units
            date: Business date (defaults to today)

        Returns:
            TransferResult with both updated accounts

        Raises:
            InvalidAmount: If amount is not positive
            SelfTransfer: If sender and receiver are the same user
            AccountNotFound: If either user has no account
            InsufficientFunds: If the sender's balance is below amount
        """
        self._check_amount("transfer", amount)
        if from_user_id == to_user_id:
            raise self._rejected("transfer", SelfTransfer(from_user_id))
        when = coerce_date(date)

        with self.store.atomic():
            accounts = self.store.get_accounts_for_update([from_user_id, to_user_id])
            sender = accounts.get(from_user_id)
            if sender is None:
                raise self._rejected("transfer", AccountNotFound(from_user_id))
            receiver = accounts.get(to_user_id)
            if receiver is None:
                raise self._rejected("transfer", AccountNotFound(to_user_id))

            if sender.balance < amount:
                raise self._rejected(
                    "transfer",
                    InsufficientFunds(
                        from_user_id, required=amount, available=sender.balance
                    ),
                )

            sender.balance -= amount
            self.store.update_account_balance(from_user_id, sender.balance)
            self.store.insert_log_entry(
                from_user_id,
                LogEntryType.TRANSFER_OUT,
                amount,
                f"Transfer to user {to_user_id}",
                when,
            )

            receiver.balance += amount
            self.store.update_account_balance(to_user_id, receiver.balance)
            self.store.insert_log_entry(
                to_user_id,
                LogEntryType.TRANSFER_IN,
                amount,
                f"Transfer from user {from_user_id}",
                when,
            )

        self.get_logger().info(
            f"Transferred {amount} from user {from_user_id} to user {to_user_id}",
            extra={
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "amount": amount,
            },
        )
        return TransferResult(sender=sender, receiver=receiver, amount=amount)

    def reserve(
        self,
        user_id: int,
        service_id: int,
        order_id: int,
        amount: int,
        date: DateInput = None,
    ) -> ReserveDetail:
        """
        Hold funds for an order.

        Moves ``amount`` from the user's balance into the reserve and
        records an open reservation. The user's total (balance + reserve)
        is unchanged.

        Args:
            user_id: User paying for the order
            service_id: Service being paid for
            order_id: Caller's order number
            amount: Positive amount in minor units
            date: Business date (defaults to today)

        Returns:
            The open ReserveDetail; its id identifies the reservation

        Raises:
            InvalidAmount: If amount is not positive
            ServiceNotFound: If the service doesn't exist
            AccountNotFound: If the user has no account
            InsufficientFunds: If the balance is below amount
        """
        self._check_amount("reserve", amount)
        when = coerce_date(date)
        title = self._service_title("reserve", service_id)

        with self.store.atomic():
            account = self.store.get_account_for_update(user_id)
            if account is None:
                raise self._rejected("reserve", AccountNotFound(user_id))
            if account.balance < amount:
                raise self._rejected(
                    "reserve",
                    InsufficientFunds(
                        user_id, required=amount, available=account.balance
                    ),
                )

            reserved = self.store.get_reserve_balance_for_update(user_id)
            if reserved is None:
                raise AccountNotFound(user_id, error_code="RESERVE_ACCOUNT_NOT_FOUND")

            self.store.update_account_balance(user_id, account.balance - amount)
            self.store.update_reserve_balance(user_id, reserved + amount)
            detail = self.store.insert_reserve_detail(
                user_id, service_id, order_id, amount, when
            )
            self.store.insert_log_entry(
                user_id,
                LogEntryType.RESERVATION,
                amount,
                f'Order {order_id}, service "{title}"',
                when,
            )

        self.get_logger().info(
            f"Reserved {amount} for user {user_id}, order {order_id}",
            extra={
                "user_id": user_id,
                "reservation_id": detail.id,
                "service_id": service_id,
                "order_id": order_id,
                "amount": amount,
            },
        )
        return detail

    def confirm(self, params: ReservationParams) -> ReportEntry:
        """
        Finalise a reservation and charge the held funds.

        The reserve is debited and a report entry is written. The user's
        main balance is not touched; it was debited at reservation time.

        Args:
            params: Reference to the open reservation

        Returns:
            The ReportEntry recording the charge

        Raises:
            InvalidReservationReference: If params cannot identify a reservation
            InvalidAmount: If params give a non-positive amount
            AccountNotFound: If the user has no reserve account
            ReservationNotFound: If no open reservation matches
        """
        self._check_reference("confirm", params)

        with self.store.atomic():
            reserved = self.store.get_reserve_balance_for_update(params.user_id)
            if reserved is None:
                raise self._rejected("confirm", AccountNotFound(params.user_id))

            detail = self._take_reservation("confirm", params)
            self.store.update_reserve_balance(params.user_id, reserved - detail.amount)
            entry = self.store.insert_report_entry(
                params.user_id,
                detail.service_id,
                detail.order_id,
                detail.amount,
                params.date,
            )

        self.get_logger().info(
            f"Reservation {detail.id} confirmed for user {params.user_id}",
            extra={
                "user_id": params.user_id,
                "reservation_id": detail.id,
                "service_id": detail.service_id,
                "order_id": detail.order_id,
                "amount": detail.amount,
            },
        )
        return entry

    def cancel_reservation(self, params: ReservationParams) -> Account:
        """
        Release a reservation and refund the held funds.

        Args:
            params: Reference to the open reservation

        Returns:
            The user's Account after the refund

        Raises:
            InvalidReservationReference: If params cannot identify a reservation
            InvalidAmount: If params give a non-positive amount
            ServiceNotFound: If params name a service that doesn't exist
            AccountNotFound: If the user has no account
            ReservationNotFound: If no open reservation matches
        """
        self._check_reference("cancel", params)
        title = None
        if params.service_id is not None:
            title = self._service_title("cancel", params.service_id)

        with self.store.atomic():
            account = self.store.get_account_for_update(params.user_id)
            if account is None:
                raise self._rejected("cancel", AccountNotFound(params.user_id))
            reserved = self.store.get_reserve_balance_for_update(params.user_id)
            if reserved is None:
                raise AccountNotFound(
                    params.user_id, error_code="RESERVE_ACCOUNT_NOT_FOUND"
                )

            detail = self._take_reservation("cancel", params)
            if title is None or detail.service_id != params.service_id:
                title = self.store.get_service_title(detail.service_id)

            self.store.insert_log_entry(
                params.user_id,
                LogEntryType.CANCELLATION,
                detail.amount,
                f'Cancelled order {detail.order_id}, service "{title}"',
                params.date,
            )
            account.balance += detail.amount
            self.store.update_account_balance(params.user_id, account.balance)
            self.store.update_reserve_balance(params.user_id, reserved - detail.amount)

        self.get_logger().info(
            f"Reservation {detail.id} cancelled for user {params.user_id}",
            extra={
                "user_id": params.user_id,
                "reservation_id": detail.id,
                "order_id": detail.order_id,
                "amount": detail.amount,
            },
        )
        return account

    # =========================================================================
    # Reports
    # =========================================================================

    def create_report(self, month: int, year: int) -> MonthlyReport:
        """
        Sum confirmed charges per service for a calendar month.

        Raises:
            InvalidReportPeriod: If month is not 1-12 or year is out of range
        """
        try:
            date_from, date_to = month_bounds(month, year)
        except ValueError:
            raise self._rejected("report", InvalidReportPeriod(month, year))

        totals = self.store.get_report_totals(date_from, date_to)
        return MonthlyReport(
            month=month,
            year=year,
            date_from=date_from,
            date_to=date_to,
            totals=totals,
        )

    def export_report(self, month: int, year: int) -> ReportFile:
        """
        Aggregate a month and write it to a report file.

        Returns:
            ReportFile naming the written file

        Raises:
            InvalidReportPeriod: If the period is invalid
            ReportWriteError: If the file cannot be written
        """
        report = self.create_report(month, year)
        report_file = self.writer.write(report)
        self.get_logger().info(
            f"Report exported for {month}/{year}",
            extra={
                "month": month,
                "year": year,
                "report_filename": report_file.filename,
            },
        )
        return report_file
