"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

import os

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections
from django.http import JsonResponse


def health_check(request):
    """
    Health check endpoint for orchestration and load balancers.

    Checks the database the balance engine writes to and whether the
    monthly report directory can be written.

    Returns:
        JsonResponse with overall status and per-component state:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - reports: "writable" or "unwritable" (does not affect status)

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {
            "status": "healthy",
            "database": "connected",
            "reports": "writable"
        }
    """
    alias = getattr(settings, "BALANCE_DATABASE_ALIAS", DEFAULT_DB_ALIAS)
    health_status = {"status": "healthy", "database": "unknown"}

    try:
        with connections[alias].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"

    # Report export degrades on its own; balances keep working without it
    reports_dir = settings.BALANCE_REPORTS_DIR
    target = reports_dir if reports_dir.exists() else reports_dir.parent
    writable = target.is_dir() and os.access(target, os.W_OK)
    health_status["reports"] = "writable" if writable else "unwritable"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JsonResponse(health_status, status=status_code)
