"""
Data types for balance operations.

This module defines dataclasses and enums used throughout the balance
system for type-safe data transfer between layers.

Types:
    HistorySortField / SortDirection: Recognised history orderings
    ReservationParams: Reference to an open reservation (confirm/cancel)
    TransferResult: Both accounts after a transfer
    MonthlyReport: Service revenue totals for one calendar month
    ReportFile: A written monthly report on disk

Usage:
    from balance.types import ReservationParams, coerce_date

    params = ReservationParams(user_id=1, reservation_id=17)
    when = coerce_date("2022-10-01")
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

if TYPE_CHECKING:
    from balance.models import Account


class HistorySortField(models.TextChoices):
    """Fields a user's history can be ordered by."""

    DATE = "date", "Date"
    AMOUNT = "amount", "Amount"


class SortDirection(models.TextChoices):
    ASC = "asc", "Ascending"
    DESC = "desc", "Descending"


def coerce_date(value: datetime.date | str | None) -> datetime.date:
    """
    Normalise a business date supplied by a caller.

    Dates pass through, datetimes are truncated to their date, and ISO
    ``YYYY-MM-DD`` strings are parsed. Anything absent or unparseable
    becomes today's date.

    Args:
        value: Date, datetime, ISO string or None

    Returns:
        The business date to record

    Example:
        coerce_date("2022-10-01")  # date(2022, 10, 1)
        coerce_date("yesterday")   # today
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    return timezone.localdate()


@dataclass
class ReservationParams:
    """
    Reference to an open reservation, used by confirm and cancel.

    A reservation is identified either by ``reservation_id`` (the id
    returned when it was created) or, when no id is given, by the full
    description it was created with.

    Required Attributes:
        user_id: Owner of the reservation

    Optional Attributes:
        reservation_id: Synthetic reservation id
        service_id: Service being paid for
        order_id: Caller's order number
        amount: Held amount (the engine rejects non-positive values)
        date: Business date of the reservation; also recorded on the
            resulting report or log entry. Defaults to today.

    Example:
        by_id = ReservationParams(user_id=1, reservation_id=17)
        by_tuple = ReservationParams(
            user_id=1,
            service_id=1,
            order_id=12,
            amount=40,
            date=datetime.date(2022, 10, 1),
        )
    """

    user_id: int
    reservation_id: int | None = None
    service_id: int | None = None
    order_id: int | None = None
    amount: int | None = None
    date: datetime.date | str | None = None

    def __post_init__(self) -> None:
        self.date = coerce_date(self.date)

    @property
    def missing_fields(self) -> list[str]:
        """Fields needed for a tuple match that were not supplied."""
        if self.reservation_id is not None:
            return []
        return [
            name
            for name in ("service_id", "order_id", "amount")
            if getattr(self, name) is None
        ]


@dataclass(frozen=True)
class TransferResult:
    """Sender and receiver accounts after a committed transfer."""

    sender: Account
    receiver: Account
    amount: int


@dataclass(frozen=True)
class MonthlyReport:
    """
    Confirmed revenue per service title for one calendar month.

    Attributes:
        month: Month number (1-12)
        year: Four-digit year
        date_from: First day of the month
        date_to: Last day of the month
        totals: Mapping of service title to summed amount
    """

    month: int
    year: int
    date_from: datetime.date
    date_to: datetime.date
    totals: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.totals.values())

    def rows(self) -> list[tuple[str, int]]:
        """Totals as (title, amount) pairs sorted by title."""
        return sorted(self.totals.items())


@dataclass(frozen=True)
class ReportFile:
    """A monthly report written to the reports directory."""

    report: MonthlyReport
    filename: str
    path: str
