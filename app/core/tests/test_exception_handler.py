"""Tests for the DRF exception handler."""

from __future__ import annotations

import pytest
from rest_framework import status
from rest_framework.exceptions import ParseError

from core.exception_handler import exception_handler, status_for
from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)


class TestStatusFor:
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (ValidationError("x"), status.HTTP_400_BAD_REQUEST),
            (NotFoundError("x"), status.HTTP_404_NOT_FOUND),
            (ConflictError("x"), status.HTTP_409_CONFLICT),
            (InfrastructureError("x"), status.HTTP_503_SERVICE_UNAVAILABLE),
            (BaseApplicationError("x"), status.HTTP_400_BAD_REQUEST),
        ],
    )
    def test_mapping(self, exc, expected):
        assert status_for(exc) == expected


class TestExceptionHandler:
    def test_business_error_body(self):
        exc = ConflictError("Insufficient funds", details={"available": 2})

        response = exception_handler(exc, {"view": None})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data == {
            "error": "Insufficient funds",
            "error_code": "CONFLICT",
            "details": {"available": 2},
        }

    def test_infrastructure_error_hides_details(self):
        exc = InfrastructureError("Database down", details={"host": "db-1"})

        response = exception_handler(exc, {"view": None})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "details" not in response.data

    def test_infrastructure_error_is_logged(self, caplog):
        with caplog.at_level("ERROR", logger="core.exception_handler"):
            exception_handler(InfrastructureError("Database down"), {})

        assert "Database down" in caplog.text

    def test_drf_errors_use_default_handler(self):
        response = exception_handler(ParseError("bad json"), {"view": None})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {"detail": "bad json"}

    def test_unknown_errors_are_not_handled(self):
        assert exception_handler(RuntimeError("boom"), {"view": None}) is None
