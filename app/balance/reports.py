"""
Monthly report helpers.

month_bounds computes the inclusive date range of a calendar month and
ReportWriter serialises a MonthlyReport into a semicolon-separated file
in the reports directory.

File format:
    One ``title;amount`` line per service, sorted by title, no header,
    encoded with BALANCE_REPORT_ENCODING.

Usage:
    from balance.reports import ReportWriter, month_bounds

    first, last = month_bounds(10, 2022)
    report_file = ReportWriter(settings).write(report)
"""

from __future__ import annotations

import calendar
import contextlib
import csv
import datetime
import logging
import time
from typing import TYPE_CHECKING, TextIO

from .conf import BalanceSettings
from .exceptions import ReportWriteError
from .types import ReportFile

if TYPE_CHECKING:
    from pathlib import Path

    from .types import MonthlyReport

logger = logging.getLogger(__name__)

# Same-second exports before giving up on a free file name
MAX_NAME_ATTEMPTS = 100


def month_bounds(month: int, year: int) -> tuple[datetime.date, datetime.date]:
    """
    Return the first and last day of a calendar month.

    Raises:
        ValueError: If month or year is out of range
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, 1), datetime.date(year, month, last_day)


def report_filename(
    month: int, year: int, timestamp: int | None = None, sequence: int = 0
) -> str:
    """
    Build a report file name, e.g. ``report-2022-10-1665000000.csv``.

    A non-zero ``sequence`` separates reports exported within the same
    second: ``report-2022-10-1665000000-1.csv``.
    """
    if timestamp is None:
        timestamp = int(time.time())
    suffix = f"-{sequence}" if sequence else ""
    return f"report-{year}-{month:02d}-{timestamp}{suffix}.csv"


class ReportWriter:
    """
    Writes monthly reports to the configured reports directory.

    Attributes:
        directory: Target directory, created on first write
        encoding: Text encoding of the written files
    """

    def __init__(self, settings: BalanceSettings | None = None):
        settings = settings or BalanceSettings.from_django()
        self.directory: Path = settings.reports_dir
        self.encoding = settings.report_encoding

    def _create(self, month: int, year: int) -> tuple[TextIO, Path]:
        """Open a new report file exclusively; existing files are never reused."""
        timestamp = int(time.time())
        for sequence in range(MAX_NAME_ATTEMPTS):
            path = self.directory / report_filename(month, year, timestamp, sequence)
            try:
                return path.open("x", encoding=self.encoding, newline=""), path
            except FileExistsError:
                continue
        raise FileExistsError(
            f"No free report file name for {year}-{month:02d} at {timestamp}"
        )

    def write(self, report: MonthlyReport) -> ReportFile:
        """
        Write a report file.

        A failed write leaves no file behind.

        Args:
            report: Aggregated totals to serialise

        Returns:
            ReportFile describing the written file

        Raises:
            ReportWriteError: If the directory or file cannot be written,
                or a title cannot be encoded
        """
        path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            handle, path = self._create(report.month, report.year)
            with handle:
                writer = csv.writer(handle, delimiter=";", lineterminator="\n")
                writer.writerows(report.rows())
        except (OSError, UnicodeEncodeError) as exc:
            target = path or self.directory
            if path is not None:
                with contextlib.suppress(OSError):
                    path.unlink(missing_ok=True)
            logger.error(
                f"Failed to write report for {report.year}-{report.month:02d}: {exc}",
                extra={"path": str(target)},
            )
            raise ReportWriteError(str(target)) from exc

        logger.info(
            f"Report written: {path.name}",
            extra={
                "month": report.month,
                "year": report.year,
                "services": len(report.totals),
            },
        )
        return ReportFile(report=report, filename=path.name, path=str(path))

    def resolve(self, filename: str) -> Path | None:
        """
        Locate a previously written report.

        Only bare file names inside the reports directory are accepted.

        Returns:
            The file path, or None if it doesn't exist or is not a report
        """
        if "/" in filename or "\\" in filename or not filename.endswith(".csv"):
            return None
        path = self.directory / filename
        if not path.is_file():
            return None
        return path
