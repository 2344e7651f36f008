"""Year-month keys and calendar-month reporting windows."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from zoneinfo import ZoneInfo

from fieldsync.core.exceptions import InvalidYearMonthError

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def parse_year_month(year_month: str) -> tuple[int, int]:
    """Split a "YYYY-MM" key into (year, month)."""
    match = _YEAR_MONTH.match(year_month or "")
    if match is None:
        raise InvalidYearMonthError(f"Expected YYYY-MM, got {year_month!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidYearMonthError(f"Month out of range in {year_month!r}")
    return year, month


def format_year_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the named zone, or None for the host's local zone."""
    return ZoneInfo(name) if name else None


@dataclass(frozen=True)
class MonthWindow:
    """Inclusive [start_ms, end_ms] bounds of a calendar month in epoch milliseconds."""

    year: int
    month: int
    start_ms: int
    end_ms: int

    @classmethod
    def for_month(cls, year: int, month: int, tz: tzinfo | None = None) -> MonthWindow:
        last_day = calendar.monthrange(year, month)[1]
        start = datetime.combine(date(year, month, 1), time.min, tzinfo=tz)
        end = datetime.combine(date(year, month, last_day), time(23, 59, 59, 999000), tzinfo=tz)
        return cls(
            year=year,
            month=month,
            start_ms=round(start.timestamp() * 1000),
            end_ms=round(end.timestamp() * 1000),
        )

    @classmethod
    def for_year_month(cls, year_month: str, tz: tzinfo | None = None) -> MonthWindow:
        year, month = parse_year_month(year_month)
        return cls.for_month(year, month, tz)

    @property
    def key(self) -> str:
        return format_year_month(self.year, self.month)

    @property
    def days(self) -> list[date]:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return [date(self.year, self.month, d) for d in range(1, last_day + 1)]

    def contains(self, epoch_ms: int) -> bool:
        return self.start_ms <= epoch_ms <= self.end_ms


def epoch_millis(moment: datetime) -> int:
    """Epoch milliseconds of a datetime; naive values are read as local time."""
    return round(moment.timestamp() * 1000)
