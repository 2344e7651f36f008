"""Tests for attendance and leave day tallies."""

from __future__ import annotations

from fieldsync.core.periods import MonthWindow
from fieldsync.payroll.attendance import attendance_days, leave_days

JUNE = MonthWindow.for_month(2025, 6)


def test_counts_present_days_in_month():
    snapshot = {
        "2025-06-02": {"asha": {"status": "present"}, "vikram": {"status": "absent"}},
        "2025-06-03": {"asha": {"status": "present"}, "vikram": {"status": "present"}},
        "2025-07-01": {"asha": {"status": "present"}},
        "2025-05-31": {"vikram": {"status": "present"}},
    }
    assert attendance_days(snapshot, JUNE) == {"asha": 2, "vikram": 1}


def test_ignores_malformed_attendance_entries():
    snapshot = {"2025-06-02": "oops", "2025-06-03": {"asha": "present"}}
    assert attendance_days(snapshot, JUNE) == {}


def test_missing_attendance_collection():
    assert attendance_days(None, JUNE) == {}


def test_approved_leave_clipped_to_month():
    snapshot = {
        "asha": {
            "l1": {"status": "approved", "startDate": "2025-05-30", "endDate": "2025-06-02"},
            "l2": {"status": "approved", "startDate": "2025-06-10", "endDate": "2025-06-10"},
            "l3": {"status": "pending", "startDate": "2025-06-20", "endDate": "2025-06-25"},
        },
        "vikram": {
            "l4": {"status": "approved", "startDate": "2025-06-29", "endDate": "2025-07-04"},
        },
    }
    assert leave_days(snapshot, JUNE) == {"asha": 3, "vikram": 2}


def test_leave_outside_month_or_with_bad_dates_is_skipped():
    snapshot = {
        "asha": {
            "l1": {"status": "approved", "startDate": "2025-07-01", "endDate": "2025-07-03"},
            "l2": {"status": "approved", "startDate": "someday", "endDate": "2025-06-03"},
        },
    }
    assert leave_days(snapshot, JUNE) == {}
