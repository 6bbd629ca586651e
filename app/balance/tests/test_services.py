"""
Tests for BalanceService.

This module tests the balance engine operation by operation: deposits,
transfers, the reserve/confirm/cancel workflow, history and reports.
"""

import datetime
import logging
from unittest.mock import patch

import pytest
from django.utils import timezone

from balance.exceptions import (
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
from balance.models import (
    Account,
    LogEntry,
    LogEntryType,
    ReportEntry,
    ReserveAccount,
    ReserveDetail,
)
from balance.services import BalanceService
from balance.tests.factories import (
    AccountFactory,
    LogEntryFactory,
    ReportEntryFactory,
    ServiceFactory,
)
from balance.types import ReservationParams


def balance_of(user_id):
    return Account.objects.get(id=user_id).balance


def reserved_of(user_id):
    return ReserveAccount.objects.get(user_id=user_id).balance


class TestGetBalance:
    """Tests for BalanceService.get_balance()."""

    def test_returns_account(self, balance_service, funded_account):
        account = balance_service.get_balance(funded_account.id)

        assert account.id == 1
        assert account.balance == 100

    def test_raises_account_not_found_for_unknown_user(self, balance_service):
        with pytest.raises(AccountNotFound) as exc_info:
            balance_service.get_balance(999)

        assert exc_info.value.details == {"user_id": 999}
        assert exc_info.value.error_code == "ACCOUNT_NOT_FOUND"


class TestReplenish:
    """Tests for BalanceService.replenish()."""

    def test_creates_account_and_reserve_for_new_user(
        self, balance_service, business_date
    ):
        """First top-up creates the Account and an empty ReserveAccount."""
        account = balance_service.replenish(1, 100, date=business_date)

        assert account.balance == 100
        assert balance_of(1) == 100
        assert reserved_of(1) == 0

    def test_adds_to_existing_balance(self, balance_service, funded_account):
        account = balance_service.replenish(funded_account.id, 50)

        assert account.balance == 150
        assert balance_of(funded_account.id) == 150

    def test_writes_top_up_log_entry(self, balance_service, business_date):
        balance_service.replenish(1, 100, date=business_date)

        entry = LogEntry.objects.get(user_id=1)
        assert entry.entry_type == LogEntryType.TOP_UP
        assert entry.amount == 100
        assert entry.description == "Balance top-up"
        assert entry.date == business_date

    def test_parses_iso_date_string(self, balance_service):
        balance_service.replenish(1, 100, date="2022-10-01")

        assert LogEntry.objects.get(user_id=1).date == datetime.date(2022, 10, 1)

    def test_unparseable_date_means_today(self, balance_service):
        balance_service.replenish(1, 100, date="not-a-date")

        assert LogEntry.objects.get(user_id=1).date == timezone.localdate()

    @pytest.mark.parametrize("amount", [0, -10])
    def test_rejects_non_positive_amount(self, balance_service, amount):
        with pytest.raises(InvalidAmount):
            balance_service.replenish(1, amount)

        assert not Account.objects.filter(id=1).exists()
        assert LogEntry.objects.count() == 0

    def test_exactly_one_account_per_user(self, balance_service):
        balance_service.replenish(1, 10)
        balance_service.replenish(1, 20)

        assert Account.objects.filter(id=1).count() == 1
        assert ReserveAccount.objects.filter(user_id=1).count() == 1
        assert balance_of(1) == 30

    def test_lost_creation_race_credits_existing_row(self, balance_service, store):
        """An account created between lookup and insert is topped up instead."""
        AccountFactory(id=1, balance=5)
        lookups = [None, Account.objects.get(id=1)]

        with patch.object(store, "get_account_for_update", side_effect=lookups):
            account = balance_service.replenish(1, 7)

        assert account.balance == 12
        assert balance_of(1) == 12
        assert ReserveAccount.objects.filter(user_id=1).count() == 1
        assert LogEntry.objects.filter(user_id=1).count() == 1


class TestTransfer:
    """Tests for BalanceService.transfer()."""

    def test_moves_funds_between_users(
        self, balance_service, funded_account, second_account
    ):
        result = balance_service.transfer(1, 2, 30)

        assert result.sender.balance == 70
        assert result.receiver.balance == 40
        assert result.amount == 30
        assert balance_of(1) == 70
        assert balance_of(2) == 40

    def test_writes_one_log_entry_per_side(
        self, balance_service, funded_account, second_account, business_date
    ):
        balance_service.transfer(1, 2, 30, date=business_date)

        sent = LogEntry.objects.get(user_id=1)
        received = LogEntry.objects.get(user_id=2)
        assert sent.entry_type == LogEntryType.TRANSFER_OUT
        assert sent.description == "Transfer to user 2"
        assert received.entry_type == LogEntryType.TRANSFER_IN
        assert received.description == "Transfer from user 1"
        assert sent.amount == received.amount == 30

    def test_can_transfer_entire_balance(
        self, balance_service, funded_account, second_account
    ):
        balance_service.transfer(1, 2, 100)

        assert balance_of(1) == 0
        assert balance_of(2) == 110

    def test_insufficient_funds_leaves_state_unchanged(
        self, balance_service, funded_account, second_account
    ):
        with pytest.raises(InsufficientFunds) as exc_info:
            balance_service.transfer(1, 2, 101)

        assert exc_info.value.required == 101
        assert exc_info.value.available == 100
        assert balance_of(1) == 100
        assert balance_of(2) == 10
        assert LogEntry.objects.count() == 0

    def test_unknown_sender(self, balance_service, second_account):
        with pytest.raises(AccountNotFound) as exc_info:
            balance_service.transfer(1, 2, 10)

        assert exc_info.value.user_id == 1

    def test_unknown_receiver(self, balance_service, funded_account):
        with pytest.raises(AccountNotFound) as exc_info:
            balance_service.transfer(1, 2, 10)

        assert exc_info.value.user_id == 2
        assert balance_of(1) == 100

    def test_rejects_self_transfer(self, balance_service, funded_account):
        with pytest.raises(SelfTransfer):
            balance_service.transfer(1, 1, 10)

        assert balance_of(1) == 100

    def test_rejects_non_positive_amount(
        self, balance_service, funded_account, second_account
    ):
        with pytest.raises(InvalidAmount):
            balance_service.transfer(1, 2, 0)

    def test_higher_id_can_send_to_lower_id(
        self, balance_service, funded_account, second_account
    ):
        """Lock order is by id, not by sender/receiver role."""
        balance_service.transfer(2, 1, 10)

        assert balance_of(1) == 110
        assert balance_of(2) == 0


class TestReserve:
    """Tests for BalanceService.reserve()."""

    def test_moves_funds_into_reserve(
        self, balance_service, funded_account, catalog_service
    ):
        detail = balance_service.reserve(1, catalog_service.id, 12, 40)

        assert detail.id is not None
        assert detail.amount == 40
        assert detail.order_id == 12
        assert balance_of(1) == 60
        assert reserved_of(1) == 40

    def test_total_funds_unchanged(
        self, balance_service, funded_account, catalog_service
    ):
        balance_service.reserve(1, catalog_service.id, 12, 40)

        assert balance_of(1) + reserved_of(1) == 100

    def test_writes_reservation_log_entry(
        self, balance_service, funded_account, catalog_service, business_date
    ):
        balance_service.reserve(1, catalog_service.id, 12, 40, date=business_date)

        entry = LogEntry.objects.get(user_id=1)
        assert entry.entry_type == LogEntryType.RESERVATION
        assert entry.description == 'Order 12, service "Massage"'
        assert entry.date == business_date

    def test_insufficient_funds(self, balance_service, catalog_service):
        AccountFactory(id=1, balance=50)

        with pytest.raises(InsufficientFunds):
            balance_service.reserve(1, catalog_service.id, 1, 100)

        assert balance_of(1) == 50
        assert reserved_of(1) == 0
        assert ReserveDetail.objects.count() == 0

    def test_unknown_service(self, balance_service, funded_account):
        with pytest.raises(ServiceNotFound):
            balance_service.reserve(1, 999, 12, 40)

        assert balance_of(1) == 100

    def test_unknown_user(self, balance_service, catalog_service):
        with pytest.raises(AccountNotFound):
            balance_service.reserve(1, catalog_service.id, 12, 40)

    def test_missing_reserve_account(self, balance_service, catalog_service):
        AccountFactory(id=1, balance=100, reserved__skip=True)

        with pytest.raises(AccountNotFound) as exc_info:
            balance_service.reserve(1, catalog_service.id, 12, 40)

        assert exc_info.value.error_code == "RESERVE_ACCOUNT_NOT_FOUND"
        assert balance_of(1) == 100

    def test_rejects_non_positive_amount(
        self, balance_service, funded_account, catalog_service
    ):
        with pytest.raises(InvalidAmount):
            balance_service.reserve(1, catalog_service.id, 12, -1)


class TestConfirm:
    """Tests for BalanceService.confirm()."""

    @pytest.fixture
    def reservation(self, balance_service, funded_account, catalog_service):
        return balance_service.reserve(
            1, catalog_service.id, 12, 40, date=datetime.date(2022, 10, 1)
        )

    def test_consumes_reserve_without_refund(self, balance_service, reservation):
        entry = balance_service.confirm(
            ReservationParams(user_id=1, reservation_id=reservation.id)
        )

        assert balance_of(1) == 60
        assert reserved_of(1) == 0
        assert entry.amount == 40
        assert entry.order_id == 12
        assert not ReserveDetail.objects.filter(id=reservation.id).exists()

    def test_writes_report_entry(self, balance_service, reservation):
        balance_service.confirm(
            ReservationParams(
                user_id=1,
                reservation_id=reservation.id,
                date=datetime.date(2022, 10, 5),
            )
        )

        entry = ReportEntry.objects.get()
        assert entry.user_id == 1
        assert entry.service_id == reservation.service_id
        assert entry.amount == 40
        assert entry.date == datetime.date(2022, 10, 5)

    def test_matches_by_full_description(
        self, balance_service, reservation, catalog_service
    ):
        balance_service.confirm(
            ReservationParams(
                user_id=1,
                service_id=catalog_service.id,
                order_id=12,
                amount=40,
                date="2022-10-01",
            )
        )

        assert reserved_of(1) == 0
        assert ReportEntry.objects.count() == 1

    def test_description_mismatch_is_not_found(
        self, balance_service, reservation, catalog_service
    ):
        with pytest.raises(ReservationNotFound):
            balance_service.confirm(
                ReservationParams(
                    user_id=1,
                    service_id=catalog_service.id,
                    order_id=12,
                    amount=41,
                    date="2022-10-01",
                )
            )

        assert reserved_of(1) == 40

    def test_second_confirm_fails(self, balance_service, reservation):
        params = ReservationParams(user_id=1, reservation_id=reservation.id)
        balance_service.confirm(params)

        with pytest.raises(ReservationNotFound):
            balance_service.confirm(params)

        assert ReportEntry.objects.count() == 1

    def test_other_users_reservation_is_not_found(self, balance_service, reservation):
        AccountFactory(id=2)

        with pytest.raises(ReservationNotFound):
            balance_service.confirm(
                ReservationParams(user_id=2, reservation_id=reservation.id)
            )

    def test_user_without_reserve_account(self, balance_service):
        with pytest.raises(AccountNotFound):
            balance_service.confirm(ReservationParams(user_id=5, reservation_id=1))

    def test_incomplete_reference(self, balance_service, reservation):
        with pytest.raises(InvalidReservationReference) as exc_info:
            balance_service.confirm(ReservationParams(user_id=1, order_id=12))

        assert exc_info.value.missing == ["service_id", "amount"]

    @pytest.mark.parametrize("amount", [0, -40])
    def test_rejects_non_positive_amount(
        self, balance_service, reservation, catalog_service, amount
    ):
        with pytest.raises(InvalidAmount):
            balance_service.confirm(
                ReservationParams(
                    user_id=1, service_id=catalog_service.id, order_id=12, amount=amount
                )
            )

        assert reserved_of(1) == 40
        assert not ReportEntry.objects.exists()

    def test_duplicates_consumed_one_at_a_time(
        self, balance_service, funded_account, catalog_service
    ):
        """Identical reservations are confirmed oldest first, one per call."""
        first = balance_service.reserve(1, catalog_service.id, 7, 10, date="2022-10-01")
        second = balance_service.reserve(
            1, catalog_service.id, 7, 10, date="2022-10-01"
        )
        params = ReservationParams(
            user_id=1,
            service_id=catalog_service.id,
            order_id=7,
            amount=10,
            date="2022-10-01",
        )

        balance_service.confirm(params)

        remaining = list(ReserveDetail.objects.values_list("id", flat=True))
        assert remaining == [second.id]
        assert first.id not in remaining
        assert reserved_of(1) == 10


class TestCancelReservation:
    """Tests for BalanceService.cancel_reservation()."""

    @pytest.fixture
    def reservation(self, balance_service, funded_account, catalog_service):
        return balance_service.reserve(
            1, catalog_service.id, 12, 40, date=datetime.date(2022, 10, 1)
        )

    def test_fully_reverses_reservation(self, balance_service, reservation):
        account = balance_service.cancel_reservation(
            ReservationParams(user_id=1, reservation_id=reservation.id)
        )

        assert account.balance == 100
        assert balance_of(1) == 100
        assert reserved_of(1) == 0
        assert not ReserveDetail.objects.filter(id=reservation.id).exists()
        assert ReportEntry.objects.count() == 0

    def test_writes_cancellation_log_entry(self, balance_service, reservation):
        balance_service.cancel_reservation(
            ReservationParams(
                user_id=1,
                reservation_id=reservation.id,
                date=datetime.date(2022, 10, 2),
            )
        )

        entry = LogEntry.objects.get(entry_type=LogEntryType.CANCELLATION)
        assert entry.amount == 40
        assert entry.description == 'Cancelled order 12, service "Massage"'
        assert entry.date == datetime.date(2022, 10, 2)

    def test_matches_by_full_description(
        self, balance_service, reservation, catalog_service
    ):
        balance_service.cancel_reservation(
            ReservationParams(
                user_id=1,
                service_id=catalog_service.id,
                order_id=12,
                amount=40,
                date=datetime.date(2022, 10, 1),
            )
        )

        assert balance_of(1) == 100

    def test_never_held_funds_cannot_be_cancelled(
        self, balance_service, funded_account, catalog_service
    ):
        """Cancelling a reservation that doesn't exist must not refund anything."""
        with pytest.raises(ReservationNotFound):
            balance_service.cancel_reservation(
                ReservationParams(
                    user_id=1,
                    service_id=catalog_service.id,
                    order_id=99,
                    amount=40,
                )
            )

        assert balance_of(1) == 100
        assert LogEntry.objects.count() == 0

    def test_second_cancel_fails(self, balance_service, reservation):
        params = ReservationParams(user_id=1, reservation_id=reservation.id)
        balance_service.cancel_reservation(params)

        with pytest.raises(ReservationNotFound):
            balance_service.cancel_reservation(params)

        assert balance_of(1) == 100

    def test_unknown_service(self, balance_service, reservation):
        with pytest.raises(ServiceNotFound):
            balance_service.cancel_reservation(
                ReservationParams(user_id=1, service_id=999, order_id=12, amount=40)
            )

        assert reserved_of(1) == 40

    def test_unknown_user(self, balance_service):
        with pytest.raises(AccountNotFound):
            balance_service.cancel_reservation(
                ReservationParams(user_id=7, reservation_id=1)
            )

    @pytest.mark.parametrize("amount", [0, -40])
    def test_rejects_non_positive_amount(
        self, balance_service, reservation, catalog_service, amount
    ):
        with pytest.raises(InvalidAmount):
            balance_service.cancel_reservation(
                ReservationParams(
                    user_id=1, service_id=catalog_service.id, order_id=12, amount=amount
                )
            )

        assert balance_of(1) == 60
        assert reserved_of(1) == 40

    def test_cancel_after_confirm_fails(self, balance_service, reservation):
        params = ReservationParams(user_id=1, reservation_id=reservation.id)
        balance_service.confirm(params)

        with pytest.raises(ReservationNotFound):
            balance_service.cancel_reservation(params)

        assert balance_of(1) == 60


class TestGetHistory:
    """Tests for BalanceService.get_history()."""

    @pytest.fixture
    def entries(self, db):
        account = AccountFactory(id=1)
        return [
            LogEntryFactory(user=account, amount=50, date=datetime.date(2022, 10, 3)),
            LogEntryFactory(user=account, amount=10, date=datetime.date(2022, 10, 1)),
            LogEntryFactory(user=account, amount=30, date=datetime.date(2022, 10, 2)),
        ]

    def test_default_is_amount_ascending(self, balance_service, entries):
        history = balance_service.get_history(1)

        assert [e.amount for e in history] == [10, 30, 50]

    def test_sort_by_date_descending(self, balance_service, entries):
        history = balance_service.get_history(1, sort_field="date", direction="desc")

        assert [e.date.day for e in history] == [3, 2, 1]

    def test_sort_by_amount_descending(self, balance_service, entries):
        history = balance_service.get_history(1, sort_field="amount", direction="desc")

        assert [e.amount for e in history] == [50, 30, 10]

    def test_unknown_values_fall_back_to_amount_ascending(
        self, balance_service, entries
    ):
        history = balance_service.get_history(
            1, sort_field="description", direction="sideways"
        )

        assert [e.amount for e in history] == [10, 30, 50]

    def test_sort_values_are_case_insensitive(self, balance_service, entries):
        history = balance_service.get_history(1, sort_field="DATE", direction="ASC")

        assert [e.date.day for e in history] == [1, 2, 3]

    def test_ties_broken_by_id(self, balance_service):
        account = AccountFactory(id=1)
        first = LogEntryFactory(user=account, amount=10)
        second = LogEntryFactory(user=account, amount=10)

        history = balance_service.get_history(1)

        assert [e.id for e in history] == [first.id, second.id]

    def test_limit_and_offset(self, balance_service, entries):
        history = balance_service.get_history(1, limit=1, offset=1)

        assert [e.amount for e in history] == [30]

    def test_only_users_own_entries(self, balance_service, entries):
        LogEntryFactory(user=AccountFactory(id=2), amount=1)

        assert len(balance_service.get_history(1)) == 3

    def test_no_history(self, balance_service, funded_account):
        with pytest.raises(NoHistory):
            balance_service.get_history(funded_account.id)


class TestCreateReport:
    """Tests for BalanceService.create_report() and export_report()."""

    def test_sums_per_service_title_within_month(self, balance_service):
        massage = ServiceFactory(title="Massage")
        delivery = ServiceFactory(title="Delivery")
        ReportEntryFactory(service=massage, amount=40, date=datetime.date(2022, 10, 1))
        ReportEntryFactory(
            service=massage, amount=60, date=datetime.date(2022, 10, 31)
        )
        ReportEntryFactory(
            service=delivery, amount=15, date=datetime.date(2022, 10, 15)
        )
        # Outside the month
        ReportEntryFactory(service=massage, amount=999, date=datetime.date(2022, 9, 30))
        ReportEntryFactory(
            service=delivery, amount=999, date=datetime.date(2022, 11, 1)
        )

        report = balance_service.create_report(10, 2022)

        assert report.totals == {"Delivery": 15, "Massage": 100}
        assert report.total == 115
        assert report.date_from == datetime.date(2022, 10, 1)
        assert report.date_to == datetime.date(2022, 10, 31)

    def test_empty_month(self, balance_service):
        report = balance_service.create_report(2, 2024)

        assert report.totals == {}
        assert report.date_to == datetime.date(2024, 2, 29)

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, balance_service, month):
        with pytest.raises(InvalidReportPeriod):
            balance_service.create_report(month, 2022)

    def test_export_writes_file(self, balance_service, reports_dir):
        ReportEntryFactory(
            service=ServiceFactory(title="Massage"),
            amount=40,
            date=datetime.date(2022, 10, 1),
        )

        report_file = balance_service.export_report(10, 2022)

        path = reports_dir / report_file.filename
        assert path.read_text(encoding="utf-8") == "Massage;40\n"
        assert report_file.report.totals == {"Massage": 40}


class TestSuccessLogs:
    """Each mutation logs its outcome at INFO with structured fields."""

    @staticmethod
    def service_record(balance_logs):
        records = [
            record
            for record in balance_logs.records
            if record.name == "balance.services.BalanceService"
            and record.levelno == logging.INFO
        ]
        assert len(records) == 1
        return records[0]

    def test_replenish_new_account(self, balance_service, balance_logs):
        balance_service.replenish(1, 100)

        record = self.service_record(balance_logs)
        assert record.user_id == 1
        assert record.amount == 100
        assert record.balance == 100
        assert record.account_created is True

    def test_replenish_existing_account(
        self, balance_service, funded_account, balance_logs
    ):
        balance_service.replenish(1, 5)

        record = self.service_record(balance_logs)
        assert record.balance == 105
        assert record.account_created is False

    def test_transfer(
        self, balance_service, funded_account, second_account, balance_logs
    ):
        balance_service.transfer(1, 2, 30)

        record = self.service_record(balance_logs)
        assert (record.from_user_id, record.to_user_id, record.amount) == (1, 2, 30)

    def test_reserve(
        self, balance_service, funded_account, catalog_service, balance_logs
    ):
        detail = balance_service.reserve(1, catalog_service.id, 12, 40)

        record = self.service_record(balance_logs)
        assert record.user_id == 1
        assert record.reservation_id == detail.id
        assert record.service_id == catalog_service.id
        assert record.order_id == 12
        assert record.amount == 40

    def test_confirm(
        self, balance_service, funded_account, catalog_service, balance_logs
    ):
        detail = balance_service.reserve(1, catalog_service.id, 12, 40)
        balance_logs.clear()

        balance_service.confirm(ReservationParams(user_id=1, reservation_id=detail.id))

        record = self.service_record(balance_logs)
        assert record.user_id == 1
        assert record.reservation_id == detail.id
        assert record.service_id == catalog_service.id
        assert record.order_id == 12
        assert record.amount == 40

    def test_cancel(
        self, balance_service, funded_account, catalog_service, balance_logs
    ):
        detail = balance_service.reserve(1, catalog_service.id, 12, 40)
        balance_logs.clear()

        balance_service.cancel_reservation(
            ReservationParams(user_id=1, reservation_id=detail.id)
        )

        record = self.service_record(balance_logs)
        assert record.user_id == 1
        assert record.reservation_id == detail.id
        assert record.order_id == 12
        assert record.amount == 40

    def test_export_report(self, balance_service, balance_logs):
        ReportEntryFactory(
            service=ServiceFactory(title="Massage"),
            amount=40,
            date=datetime.date(2022, 10, 1),
        )

        report_file = balance_service.export_report(10, 2022)

        record = self.service_record(balance_logs)
        assert (record.month, record.year) == (10, 2022)
        assert record.report_filename == report_file.filename

    def test_rejection_logs_warning(self, balance_service, balance_logs):
        with pytest.raises(InvalidAmount):
            balance_service.replenish(1, 0)

        [record] = [r for r in balance_logs.records if r.levelno == logging.WARNING]
        assert record.operation == "replenish"
        assert record.error_code == "INVALID_AMOUNT"
        assert record.amount == 0


class TestFromSettings:
    """Tests for BalanceService.from_settings()."""

    def test_reads_django_settings(self, settings, tmp_path):
        settings.BALANCE_REPORTS_DIR = tmp_path / "out"
        settings.BALANCE_REPORT_ENCODING = "cp1251"

        service = BalanceService.from_settings()

        assert service.writer.directory == tmp_path / "out"
        assert service.writer.encoding == "cp1251"
        assert service.store.using == "default"
