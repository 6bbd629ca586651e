"""
Runtime configuration for the balance engine.

BalanceSettings collects the values the engine needs into one immutable
object that is passed to BalanceService, DjangoBalanceStore and
ReportWriter explicitly, so none of them read process-wide state.

Settings (config/settings.py):
    BALANCE_DATABASE_ALIAS: Django database alias the store uses
    BALANCE_REPORTS_DIR: Directory monthly report files are written to
    BALANCE_REPORT_ENCODING: Text encoding of report files
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from django.conf import settings as django_settings
from django.db import DEFAULT_DB_ALIAS


@dataclass(frozen=True)
class BalanceSettings:
    """
    Immutable balance engine configuration.

    Attributes:
        database_alias: Database connection used for every query
        reports_dir: Where report files are written
        report_encoding: Encoding of report files (e.g. "utf-8", "cp1251")
    """

    database_alias: str = DEFAULT_DB_ALIAS
    reports_dir: Path = Path("reports")
    report_encoding: str = "utf-8"

    @classmethod
    def from_django(cls) -> BalanceSettings:
        """Build settings from the active Django settings module."""
        return cls(
            database_alias=getattr(
                django_settings, "BALANCE_DATABASE_ALIAS", DEFAULT_DB_ALIAS
            ),
            reports_dir=Path(
                getattr(
                    django_settings,
                    "BALANCE_REPORTS_DIR",
                    Path(django_settings.BASE_DIR) / "reports",
                )
            ),
            report_encoding=getattr(
                django_settings, "BALANCE_REPORT_ENCODING", "utf-8"
            ),
        )
