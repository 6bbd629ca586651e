"""
Balance models for user funds and their audit trail.

This module defines the tables behind the balance engine:
- Service: Catalog of paid services that reservations refer to
- Account: A user's spendable balance
- ReserveAccount: Total funds currently held for a user
- ReserveDetail: One open reservation backing part of the held total
- LogEntry: Append-only audit trail of balance-affecting events
- ReportEntry: Confirmed charges, aggregated into monthly reports

All amounts are integers in the currency's minor unit. Balances are only
changed through balance.services.BalanceService, which locks the rows it
touches; the check constraints below are a last line of defence.

Usage:
    from balance.models import Account, LogEntry

    account = Account.objects.get(id=user_id)
    history = LogEntry.objects.filter(user_id=user_id)
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.models import BaseModel


class LogEntryType(models.TextChoices):
    """
    Kinds of audited balance events.

    Amounts on log entries are always positive; the entry type carries
    the direction of the movement.

    Values:
        TOP_UP: Funds deposited into the account
        TRANSFER_OUT: Funds sent to another user
        TRANSFER_IN: Funds received from another user
        RESERVATION: Funds moved from the balance into the reserve
        CANCELLATION: Reserved funds returned to the balance
    """

    TOP_UP = "top_up", "Top-up"
    TRANSFER_OUT = "transfer_out", "Transfer Out"
    TRANSFER_IN = "transfer_in", "Transfer In"
    RESERVATION = "reservation", "Reservation"
    CANCELLATION = "cancellation", "Cancellation"


class Service(models.Model):
    """
    A paid service that users can be charged for.

    Read-only from the engine's point of view; the catalog is maintained
    through the Django admin.

    Fields:
        id: Auto-increment primary key referenced by clients
        title: Human-readable name, used in log descriptions and reports
    """

    title = models.CharField(
        max_length=255,
        unique=True,
        help_text="Human-readable service name",
    )

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.title


class Account(BaseModel):
    """
    A user's spendable balance.

    The primary key is the user id assigned by the calling system, so
    accounts are created lazily on the first top-up for an unknown id.

    Fields:
        id: User id (not auto-generated)
        balance: Spendable funds in minor units, never negative
        created_at / updated_at: From BaseModel
    """

    id = models.PositiveBigIntegerField(
        primary_key=True,
        help_text="User id assigned by the calling system",
    )
    balance = models.BigIntegerField(
        default=0,
        help_text="Spendable funds in minor units",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="balance_account_balance_non_negative",
            )
        ]

    def __str__(self) -> str:
        return f"Account {self.id}: {self.balance}"


class ReserveAccount(BaseModel):
    """
    Funds currently held for a user across all open reservations.

    Created together with the Account. Its balance always equals the sum
    of the user's ReserveDetail amounts.

    Fields:
        user: The owning Account (also the primary key)
        balance: Held funds in minor units, never negative
    """

    user = models.OneToOneField(
        Account,
        on_delete=models.PROTECT,
        primary_key=True,
        related_name="reserve",
        help_text="Account the held funds belong to",
    )
    balance = models.BigIntegerField(
        default=0,
        help_text="Held funds in minor units",
    )

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="balance_reserve_balance_non_negative",
            )
        ]

    def __str__(self) -> str:
        return f"Reserve {self.user_id}: {self.balance}"


class ReserveDetail(models.Model):
    """
    One open reservation: a debit awaiting confirmation or cancellation.

    Created by a reservation and deleted by its confirmation or
    cancellation. The id returned at reservation time identifies the row
    unambiguously; the remaining fields describe the order.

    Fields:
        id: Synthetic reservation id
        user: Account the funds were taken from
        service: Service being paid for
        order_id: Caller's order number
        amount: Held amount in minor units (positive)
        date: Business date of the reservation
        created_at: Timestamp when the row was written
    """

    user = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    order_id = models.PositiveBigIntegerField(
        help_text="Caller's order number",
    )
    amount = models.PositiveBigIntegerField(
        help_text="Held amount in minor units",
    )
    date = models.DateField(
        help_text="Business date of the reservation",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(
                fields=["user", "service", "order_id"],
                name="balance_res_user_id_4a1f0c_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="balance_reserve_detail_amount_positive",
            )
        ]

    def __str__(self) -> str:
        return f"Reservation {self.id}: order {self.order_id}, {self.amount}"


class LogEntry(models.Model):
    """
    Append-only audit record of a balance-affecting event.

    Never updated or deleted. Every deposit, transfer leg, reservation and
    cancellation writes exactly one entry per affected user.

    Fields:
        user: Account the event applies to
        entry_type: Kind of event (see LogEntryType)
        date: Business date supplied with the operation
        amount: Amount moved, always positive
        description: Human-readable description
        created_at: Timestamp when the row was written
    """

    user = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="log_entries",
    )
    entry_type = models.CharField(
        max_length=20,
        choices=LogEntryType.choices,
    )
    date = models.DateField()
    amount = models.PositiveBigIntegerField()
    description = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["user", "date"], name="balance_log_user_id_8d2e51_idx"
            ),
            models.Index(
                fields=["user", "amount"], name="balance_log_user_id_c93b07_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.date} {self.user_id}: {self.description} ({self.amount})"


class ReportEntry(models.Model):
    """
    A confirmed charge, used for periodic revenue aggregation.

    Written only when a reservation is confirmed. Never updated or deleted.

    Fields:
        user: Account that was charged
        service: Service that was paid for
        order_id: Caller's order number
        amount: Charged amount in minor units
        date: Business date of the confirmation
        created_at: Timestamp when the row was written
    """

    user = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="report_entries",
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="report_entries",
    )
    order_id = models.PositiveBigIntegerField()
    amount = models.PositiveBigIntegerField()
    date = models.DateField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "id"]

    def __str__(self) -> str:
        return f"{self.date} {self.service_id}: {self.amount}"
