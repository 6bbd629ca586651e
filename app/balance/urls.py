"""
URL configuration for the balance API.

Routes:
    Users:
        /users/{user_id}/           - Get balance (GET)
        /users/{user_id}/history/   - Balance history (GET)

    Mutations:
        /replenishments/            - Top up (POST)
        /transfers/                 - Transfer (POST)
        /reservations/              - Reserve funds (POST)
        /reservations/confirm/      - Confirm reservation (POST)
        /reservations/cancel/       - Cancel reservation (POST)

    Reports:
        /reports/                   - Create monthly report (POST)
        /reports/{filename}/        - Download report (GET)
"""

from django.urls import path

from balance.views import (
    AccountBalanceView,
    HistoryView,
    ReplenishmentView,
    ReportDownloadView,
    ReportView,
    ReservationCancelView,
    ReservationConfirmView,
    ReservationView,
    TransferView,
)

app_name = "balance"
urlpatterns = [
    path("users/<int:user_id>/", AccountBalanceView.as_view(), name="account"),
    path("users/<int:user_id>/history/", HistoryView.as_view(), name="history"),
    path("replenishments/", ReplenishmentView.as_view(), name="replenish"),
    path("transfers/", TransferView.as_view(), name="transfer"),
    path("reservations/", ReservationView.as_view(), name="reserve"),
    path(
        "reservations/confirm/",
        ReservationConfirmView.as_view(),
        name="reservation-confirm",
    ),
    path(
        "reservations/cancel/",
        ReservationCancelView.as_view(),
        name="reservation-cancel",
    ),
    path("reports/", ReportView.as_view(), name="report"),
    path(
        "reports/<str:filename>/",
        ReportDownloadView.as_view(),
        name="report-download",
    ),
]
