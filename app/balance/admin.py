"""
Django admin configuration for balance models.

Service is the only editable model: the catalog is maintained here.
Accounts, reservations and audit records are read-only; every balance
change must go through BalanceService so it is locked and logged.
"""

from django.contrib import admin

from .models import (
    Account,
    LogEntry,
    ReportEntry,
    ReserveAccount,
    ReserveDetail,
    Service,
)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ["id", "title"]
    search_fields = ["title"]
    ordering = ["id"]


class ReadOnlyAdmin(admin.ModelAdmin):
    """
    Base admin for records owned by BalanceService.

    Rows can be browsed but not added, edited or deleted.
    """

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Account)
class AccountAdmin(ReadOnlyAdmin):
    list_display = ["id", "balance", "reserved_display", "updated_at"]
    search_fields = ["id"]
    ordering = ["id"]

    def reserved_display(self, obj: Account) -> int:
        """Funds currently held in reserve."""
        try:
            return obj.reserve.balance
        except ReserveAccount.DoesNotExist:
            return 0

    reserved_display.short_description = "Reserved"


@admin.register(ReserveAccount)
class ReserveAccountAdmin(ReadOnlyAdmin):
    list_display = ["user", "balance", "updated_at"]
    ordering = ["user"]


@admin.register(ReserveDetail)
class ReserveDetailAdmin(ReadOnlyAdmin):
    list_display = ["id", "user", "service", "order_id", "amount", "date"]
    list_filter = ["service", "date"]
    search_fields = ["user__id", "order_id"]
    ordering = ["-id"]


@admin.register(LogEntry)
class LogEntryAdmin(ReadOnlyAdmin):
    """
    Audit log entries are immutable.

    Corrections are made by new balance operations, never by editing
    or deleting history.
    """

    list_display = ["id", "date", "user", "entry_type", "amount", "description"]
    list_filter = ["entry_type", "date"]
    search_fields = ["user__id", "description"]
    date_hierarchy = "date"
    ordering = ["-id"]


@admin.register(ReportEntry)
class ReportEntryAdmin(ReadOnlyAdmin):
    list_display = ["id", "date", "user", "service", "order_id", "amount"]
    list_filter = ["service", "date"]
    date_hierarchy = "date"
    ordering = ["-date", "-id"]
