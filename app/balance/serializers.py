"""
Serializers for the balance API.

Request serializers check the shape of incoming data (positive integer
ids and amounts, report period ranges, no self transfer). Business rules
such as fund sufficiency are enforced by BalanceService.

Dates are accepted as free-form strings: a missing or unparseable date
means "today" (see balance.types.coerce_date).

Serializers:
    Requests:
        ReplenishmentSerializer, TransferSerializer, ReservationSerializer,
        ReservationReferenceSerializer, HistoryQuerySerializer,
        ReportRequestSerializer
    Responses:
        AccountSerializer, TransferResultSerializer, ReserveDetailSerializer,
        ReportEntrySerializer, LogEntrySerializer, ReportSerializer
"""

from __future__ import annotations

from rest_framework import serializers

from balance.models import (
    Account,
    LogEntry,
    ReportEntry,
    ReserveAccount,
    ReserveDetail,
)
from balance.types import HistorySortField, SortDirection


def _id_field(**kwargs) -> serializers.IntegerField:
    return serializers.IntegerField(min_value=1, **kwargs)


def _date_field() -> serializers.CharField:
    return serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Business date, YYYY-MM-DD. Missing or invalid means today.",
    )


# =============================================================================
# Requests
# =============================================================================


class ReplenishmentSerializer(serializers.Serializer):
    user_id = _id_field()
    amount = _id_field(help_text="Amount to deposit, in minor units")
    date = _date_field()


class TransferSerializer(serializers.Serializer):
    """Transfer request. Sender and receiver must differ."""

    from_user_id = _id_field()
    to_user_id = _id_field()
    amount = _id_field(help_text="Amount to transfer, in minor units")
    date = _date_field()

    def validate(self, attrs):
        if attrs["from_user_id"] == attrs["to_user_id"]:
            raise serializers.ValidationError(
                {"to_user_id": "Cannot transfer funds to the same user."}
            )
        return attrs


class ReservationSerializer(serializers.Serializer):
    user_id = _id_field()
    service_id = _id_field()
    order_id = _id_field()
    amount = _id_field(help_text="Amount to hold, in minor units")
    date = _date_field()


class ReservationReferenceSerializer(serializers.Serializer):
    """
    Reference to an open reservation for confirm/cancel.

    Either ``reservation_id`` or the full description (service_id,
    order_id, amount and date) identifies the reservation.
    """

    user_id = _id_field()
    reservation_id = _id_field(required=False, allow_null=True)
    service_id = _id_field(required=False, allow_null=True)
    order_id = _id_field(required=False, allow_null=True)
    amount = _id_field(required=False, allow_null=True)
    date = _date_field()

    def validate(self, attrs):
        if attrs.get("reservation_id") is not None:
            return attrs
        missing = [
            name
            for name in ("service_id", "order_id", "amount")
            if attrs.get(name) is None
        ]
        if missing:
            raise serializers.ValidationError(
                {name: "Required when reservation_id is not given." for name in missing}
            )
        return attrs


class HistoryQuerySerializer(serializers.Serializer):
    # Unrecognised values fall back to amount/asc in the service
    sort = serializers.CharField(
        required=False,
        default=HistorySortField.AMOUNT.value,
        help_text="date or amount",
    )
    direction = serializers.CharField(
        required=False,
        default=SortDirection.ASC.value,
        help_text="asc or desc",
    )
    limit = serializers.IntegerField(required=False, min_value=1, max_value=1000)
    offset = serializers.IntegerField(min_value=0, default=0)


class ReportRequestSerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=1970, max_value=9999)


# =============================================================================
# Responses
# =============================================================================


class AccountSerializer(serializers.ModelSerializer):
    """
    Account balance with the amount currently held in reserve.

    Usage:
        serializer = AccountSerializer(account)
    """

    user_id = serializers.IntegerField(source="id", read_only=True)
    reserved = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = ["user_id", "balance", "reserved"]
        read_only_fields = fields

    def get_reserved(self, obj: Account) -> int:
        try:
            return obj.reserve.balance
        except ReserveAccount.DoesNotExist:
            return 0


class TransferResultSerializer(serializers.Serializer):
    sender = AccountSerializer(read_only=True)
    receiver = AccountSerializer(read_only=True)
    amount = serializers.IntegerField(read_only=True)


class ReserveDetailSerializer(serializers.ModelSerializer):
    reservation_id = serializers.IntegerField(source="id", read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    service_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ReserveDetail
        fields = [
            "reservation_id",
            "user_id",
            "service_id",
            "order_id",
            "amount",
            "date",
        ]
        read_only_fields = fields


class ReportEntrySerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    service_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ReportEntry
        fields = ["id", "user_id", "service_id", "order_id", "amount", "date"]
        read_only_fields = fields


class LogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LogEntry
        fields = ["id", "entry_type", "date", "amount", "description", "created_at"]
        read_only_fields = fields


class ReportSerializer(serializers.Serializer):
    """Monthly totals per service title plus the download URL of the file."""

    month = serializers.IntegerField()
    year = serializers.IntegerField()
    date_from = serializers.DateField()
    date_to = serializers.DateField()
    totals = serializers.DictField(child=serializers.IntegerField())
    total = serializers.IntegerField()
    url = serializers.URLField()
