"""
DRF views for the balance app.

Views decode and validate requests, call BalanceService and serialise
the result. Business failures raised by the service are turned into
responses by core.exception_handler.

Related files:
    - services.py: BalanceService
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    GET  /api/v1/balance/users/{user_id}/           - Get balance
    GET  /api/v1/balance/users/{user_id}/history/   - List balance history
    POST /api/v1/balance/replenishments/            - Deposit funds
    POST /api/v1/balance/transfers/                 - Transfer between users
    POST /api/v1/balance/reservations/              - Reserve funds for an order
    POST /api/v1/balance/reservations/confirm/      - Confirm a reservation
    POST /api/v1/balance/reservations/cancel/       - Cancel a reservation
    POST /api/v1/balance/reports/                   - Build a monthly report
    GET  /api/v1/balance/reports/{filename}/        - Download a report file

Security:
    Internal service-to-service API; no user authentication.
"""

from __future__ import annotations

import logging

from django.http import FileResponse, Http404
from django.urls import reverse
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from .serializers import (
    AccountSerializer,
    HistoryQuerySerializer,
    LogEntrySerializer,
    ReplenishmentSerializer,
    ReportEntrySerializer,
    ReportRequestSerializer,
    ReportSerializer,
    ReservationReferenceSerializer,
    ReservationSerializer,
    ReserveDetailSerializer,
    TransferResultSerializer,
    TransferSerializer,
)
from .services import BalanceService
from .types import ReservationParams

logger = logging.getLogger(__name__)

TAG = "Balance"


class BalanceAPIView(APIView):
    """Base view wiring a BalanceService from the current settings."""

    permission_classes = [AllowAny]

    def get_service(self) -> BalanceService:
        return BalanceService.from_settings()


class AccountBalanceView(BalanceAPIView):
    """
    Get a user's balance.

    GET /api/v1/balance/users/{user_id}/
    """

    @extend_schema(
        operation_id="get_balance",
        summary="Get balance",
        description="Spendable balance and reserved funds of a user.",
        responses={
            200: AccountSerializer,
            404: OpenApiResponse(description="User not found"),
        },
        tags=[TAG],
    )
    def get(self, request, user_id: int):
        account = self.get_service().get_balance(user_id)
        return Response(AccountSerializer(account).data)


class HistoryView(BalanceAPIView):
    """
    List a user's balance history.

    GET /api/v1/balance/users/{user_id}/history/?sort=date&direction=desc
    """

    @extend_schema(
        operation_id="get_history",
        summary="Get balance history",
        description=(
            "Audit log of a user's deposits, transfers, reservations and "
            "cancellations. Unknown sort values fall back to amount/asc."
        ),
        parameters=[
            OpenApiParameter(
                name="sort",
                type=str,
                location=OpenApiParameter.QUERY,
                description="date or amount",
                required=False,
            ),
            OpenApiParameter(
                name="direction",
                type=str,
                location=OpenApiParameter.QUERY,
                description="asc or desc",
                required=False,
            ),
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                required=False,
            ),
            OpenApiParameter(
                name="offset",
                type=int,
                location=OpenApiParameter.QUERY,
                required=False,
            ),
        ],
        responses={
            200: LogEntrySerializer(many=True),
            404: OpenApiResponse(description="No history for this user"),
        },
        tags=[TAG],
    )
    def get(self, request, user_id: int):
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        entries = self.get_service().get_history(
            user_id,
            sort_field=params["sort"],
            direction=params["direction"],
            limit=params.get("limit"),
            offset=params["offset"],
        )
        return Response(LogEntrySerializer(entries, many=True).data)


class ReplenishmentView(BalanceAPIView):
    """
    Deposit funds into a user's balance.

    POST /api/v1/balance/replenishments/

    Request body:
        {"user_id": 1, "amount": 100, "date": "2022-10-01"}
    """

    @extend_schema(
        operation_id="replenish_balance",
        summary="Top up balance",
        description="Deposit funds. The account is created on first top-up.",
        request=ReplenishmentSerializer,
        responses={200: AccountSerializer},
        tags=[TAG],
    )
    def post(self, request):
        serializer = ReplenishmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        account = self.get_service().replenish(
            data["user_id"], data["amount"], date=data.get("date")
        )
        return Response(AccountSerializer(account).data)


class TransferView(BalanceAPIView):
    """
    Transfer funds between users.

    POST /api/v1/balance/transfers/

    Request body:
        {"from_user_id": 1, "to_user_id": 2, "amount": 30}
    """

    @extend_schema(
        operation_id="transfer_funds",
        summary="Transfer funds",
        request=TransferSerializer,
        responses={
            200: TransferResultSerializer,
            404: OpenApiResponse(description="Sender or receiver not found"),
            409: OpenApiResponse(description="Insufficient funds"),
        },
        tags=[TAG],
    )
    def post(self, request):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().transfer(
            data["from_user_id"],
            data["to_user_id"],
            data["amount"],
            date=data.get("date"),
        )
        return Response(TransferResultSerializer(result).data)


class ReservationView(BalanceAPIView):
    """
    Reserve funds for an order.

    POST /api/v1/balance/reservations/

    Request body:
        {"user_id": 1, "service_id": 1, "order_id": 12, "amount": 40}

    Returns:
        The open reservation; keep reservation_id to confirm or cancel it.
    """

    @extend_schema(
        operation_id="reserve_funds",
        summary="Reserve funds",
        request=ReservationSerializer,
        responses={
            201: ReserveDetailSerializer,
            404: OpenApiResponse(description="User or service not found"),
            409: OpenApiResponse(description="Insufficient funds"),
        },
        tags=[TAG],
    )
    def post(self, request):
        serializer = ReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        detail = self.get_service().reserve(
            data["user_id"],
            data["service_id"],
            data["order_id"],
            data["amount"],
            date=data.get("date"),
        )
        return Response(
            ReserveDetailSerializer(detail).data,
            status=status.HTTP_201_CREATED,
        )


def _reservation_params(request) -> ReservationParams:
    serializer = ReservationReferenceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return ReservationParams(**serializer.validated_data)


class ReservationConfirmView(BalanceAPIView):
    """
    Confirm a reservation, charging the held funds.

    POST /api/v1/balance/reservations/confirm/

    Request body:
        {"user_id": 1, "reservation_id": 17}
        or
        {"user_id": 1, "service_id": 1, "order_id": 12, "amount": 40,
         "date": "2022-10-01"}
    """

    @extend_schema(
        operation_id="confirm_reservation",
        summary="Confirm reservation",
        request=ReservationReferenceSerializer,
        responses={
            200: ReportEntrySerializer,
            404: OpenApiResponse(description="Reservation not found"),
        },
        tags=[TAG],
    )
    def post(self, request):
        entry = self.get_service().confirm(_reservation_params(request))
        return Response(ReportEntrySerializer(entry).data)


class ReservationCancelView(BalanceAPIView):
    """
    Cancel a reservation, returning the held funds to the balance.

    POST /api/v1/balance/reservations/cancel/
    """

    @extend_schema(
        operation_id="cancel_reservation",
        summary="Cancel reservation",
        request=ReservationReferenceSerializer,
        responses={
            200: AccountSerializer,
            404: OpenApiResponse(description="Reservation not found"),
        },
        tags=[TAG],
    )
    def post(self, request):
        account = self.get_service().cancel_reservation(_reservation_params(request))
        return Response(AccountSerializer(account).data)


class ReportView(BalanceAPIView):
    """
    Build a monthly revenue report and write it to a CSV file.

    POST /api/v1/balance/reports/

    Request body:
        {"month": 10, "year": 2022}
    """

    @extend_schema(
        operation_id="create_report",
        summary="Create monthly report",
        description="Confirmed revenue per service for a month, as JSON and CSV.",
        request=ReportRequestSerializer,
        responses={201: ReportSerializer},
        tags=[TAG],
    )
    def post(self, request):
        serializer = ReportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        report_file = self.get_service().export_report(data["month"], data["year"])
        report = report_file.report
        url = request.build_absolute_uri(
            reverse("balance:report-download", args=[report_file.filename])
        )

        payload = ReportSerializer(
            {
                "month": report.month,
                "year": report.year,
                "date_from": report.date_from,
                "date_to": report.date_to,
                "totals": report.totals,
                "total": report.total,
                "url": url,
            }
        ).data
        return Response(payload, status=status.HTTP_201_CREATED)


class ReportDownloadView(BalanceAPIView):
    """
    Download a previously generated report file.

    GET /api/v1/balance/reports/{filename}/
    """

    @extend_schema(
        operation_id="download_report",
        summary="Download report",
        responses={
            (200, "text/csv"): OpenApiResponse(description="Report file"),
            404: OpenApiResponse(description="Report not found"),
        },
        tags=[TAG],
    )
    def get(self, request, filename: str):
        path = self.get_service().writer.resolve(filename)
        if path is None:
            logger.info(f"Report not found: {filename}")
            raise Http404("Report not found")
        return FileResponse(
            path.open("rb"),
            as_attachment=True,
            filename=filename,
            content_type="text/csv",
        )
