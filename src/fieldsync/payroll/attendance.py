"""Attendance and approved-leave day counts for a payroll month."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from loguru import logger

from fieldsync.core.periods import MonthWindow
from fieldsync.core.types import Username

PRESENT = "present"
APPROVED = "approved"


def attendance_days(snapshot: Any, window: MonthWindow) -> dict[Username, int]:
    """Days marked present per username, from `attendance/{YYYY-MM-DD}/{username}`."""
    days: dict[Username, int] = {}
    if not isinstance(snapshot, dict):
        return days
    for day in window.days:
        entries = snapshot.get(day.isoformat())
        if not isinstance(entries, dict):
            continue
        for username, entry in entries.items():
            if isinstance(entry, dict) and entry.get("status") == PRESENT:
                days[username] = days.get(username, 0) + 1
    return days


def _parse_day(value: Any) -> date | None:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def leave_days(snapshot: Any, window: MonthWindow) -> dict[Username, int]:
    """Approved leave days per username, clipped to the month.

    Reads `leaveRequests/{username}/{requestId}` with `startDate`/`endDate`.
    """
    days: dict[Username, int] = {}
    if not isinstance(snapshot, dict):
        return days
    month_days = window.days
    month_start, month_end = month_days[0], month_days[-1]
    for username, requests in snapshot.items():
        if not isinstance(requests, dict):
            continue
        for request_id, request in requests.items():
            if not isinstance(request, dict) or request.get("status") != APPROVED:
                continue
            start, end = _parse_day(request.get("startDate")), _parse_day(request.get("endDate"))
            if start is None or end is None:
                logger.debug(f"Skipping leave request {request_id} of {username}: bad dates")
                continue
            first, last = max(start, month_start), min(end, month_end)
            if first > last:
                continue
            days[username] = days.get(username, 0) + (last - first + timedelta(days=1)).days
    return days
