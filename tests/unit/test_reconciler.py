"""Tests for the payroll view, sort toggling, selection and bulk mark-paid."""

from __future__ import annotations

from decimal import Decimal

import pytest

from fieldsync.models.employee import Employee
from fieldsync.models.payroll import PaymentStatus, PayrollRecord
from fieldsync.payroll.reconciler import (
    Selection,
    SortField,
    SortOrder,
    SortState,
    build_view,
    bulk_mark_paid,
    department_totals,
    salary_history,
    summarize,
    toggle_sort_field,
)
from fieldsync.payroll.records import PayrollRecordStore
from tests.fakes import FlakyDocumentStore, MemoryDocumentStore


def _employee(username: str, name: str, department: str = "General") -> Employee:
    return Employee(id=username, name=name, username=username, department=department)


def _record(employee_id: str, base: int, status: str = "pending", year_month: str = "2025-09") -> PayrollRecord:
    return PayrollRecord(
        employee_id=employee_id,
        year_month=year_month,
        base_salary=Decimal(base),
        payment_status=PaymentStatus(status),
    )


@pytest.fixture
def roster() -> list[Employee]:
    return [
        _employee("asha", "Asha Rao", "Site A"),
        _employee("vikram", "vikram Singh", "Site A"),
        _employee("meera", "Meera Iyer", "Site B"),
        _employee("bala", "Bala K", "Site B"),
    ]


@pytest.fixture
def payroll() -> dict[str, PayrollRecord]:
    return {
        "asha": _record("asha", 42000, "paid"),
        "vikram": _record("vikram", 30000),
        "meera": _record("meera", 30000, "disputed"),
    }


class TestBuildView:
    def test_employee_without_record_has_neutral_defaults(self, roster, payroll):
        rows = build_view(roster, payroll, {})
        bala = next(r for r in rows if r.employee.id == "bala")
        assert bala.record is None
        assert bala.net_salary == Decimal("0")
        assert bala.payment_status == PaymentStatus.PENDING
        assert bala.material_cost == Decimal("0")

    def test_material_cost_joined_by_username(self, roster, payroll):
        rows = build_view(roster, payroll, {"meera": Decimal("1200")})
        assert {r.employee.id: r.material_cost for r in rows}["meera"] == Decimal("1200")

    def test_day_counts_joined_by_username(self, roster, payroll):
        rows = build_view(
            roster, payroll, {},
            working_days_by_user={"asha": 22},
            leave_days_by_user={"asha": 2, "ghost": 5},
        )
        asha = next(r for r in rows if r.employee.id == "asha")
        assert (asha.working_days, asha.leave_days) == (22, 2)
        bala = next(r for r in rows if r.employee.id == "bala")
        assert (bala.working_days, bala.leave_days) == (0, 0)

    def test_text_filter_matches_name_or_username(self, roster, payroll):
        assert [r.employee.id for r in build_view(roster, payroll, {}, "IYER")] == ["meera"]
        assert [r.employee.id for r in build_view(roster, payroll, {}, "vik")] == ["vikram"]
        assert build_view(roster, payroll, {}, "nobody") == []

    def test_name_sort_ignores_case(self, roster, payroll):
        rows = build_view(roster, payroll, {}, sort_field=SortField.NAME)
        assert [r.employee.id for r in rows] == ["asha", "bala", "meera", "vikram"]

    def test_net_salary_descending(self, roster, payroll):
        rows = build_view(roster, payroll, {}, sort_field="netSalary", sort_order="desc")
        assert [r.employee.id for r in rows] == ["asha", "vikram", "meera", "bala"]

    def test_ties_keep_roster_order_in_both_directions(self, roster, payroll):
        asc = build_view(roster, payroll, {}, sort_field=SortField.NET_SALARY)
        desc = build_view(roster, payroll, {}, sort_field=SortField.NET_SALARY, sort_order=SortOrder.DESC)
        assert [r.employee.id for r in asc][1:3] == ["vikram", "meera"]
        assert [r.employee.id for r in desc][1:3] == ["vikram", "meera"]

    def test_payment_status_sorts_lexically(self, roster, payroll):
        rows = build_view(roster, payroll, {}, sort_field=SortField.PAYMENT_STATUS)
        assert [r.payment_status.value for r in rows] == ["disputed", "paid", "pending", "pending"]

    def test_material_spent_sort(self, roster, payroll):
        costs = {"bala": Decimal("5"), "asha": Decimal("50")}
        rows = build_view(roster, payroll, costs, sort_field=SortField.MATERIAL_SPENT, sort_order=SortOrder.DESC)
        assert [r.employee.id for r in rows][:2] == ["asha", "bala"]

    def test_empty_roster(self, payroll):
        assert build_view([], payroll, {}) == []


class TestToggleSortField:
    def test_same_field_flips_direction(self):
        state = toggle_sort_field(SortState(), SortField.NAME)
        assert state == SortState(field=SortField.NAME, order=SortOrder.DESC)

    def test_toggling_twice_restores_order(self):
        start = SortState(field=SortField.NET_SALARY, order=SortOrder.ASC)
        assert toggle_sort_field(toggle_sort_field(start, "netSalary"), "netSalary") == start

    def test_new_field_starts_ascending(self):
        start = SortState(field=SortField.NAME, order=SortOrder.DESC)
        assert toggle_sort_field(start, "materialSpent") == SortState(
            field=SortField.MATERIAL_SPENT, order=SortOrder.ASC
        )

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            toggle_sort_field(SortState(), "salary")


class TestSelection:
    def test_select_all_takes_current_view(self, roster, payroll):
        selection = Selection()
        selection.select_all(build_view(roster, payroll, {}, "rao"))
        assert selection.ids == ["asha"]

    def test_select_all_then_none(self, roster, payroll):
        view = build_view(roster, payroll, {})
        selection = Selection()
        selection.select_all(view)
        assert len(selection) == 4
        assert selection.covers(view)
        selection.select_none()
        assert len(selection) == 0
        assert not selection.covers(view)

    def test_toggle_one(self):
        selection = Selection()
        selection.toggle_one("asha")
        selection.toggle_one("vikram")
        selection.toggle_one("asha")
        assert selection.ids == ["vikram"]

    def test_filter_change_does_not_prune(self, roster, payroll):
        selection = Selection()
        selection.select_all(build_view(roster, payroll, {}))
        narrowed = build_view(roster, payroll, {}, "meera")
        assert len(narrowed) == 1
        assert len(selection) == 4
        assert selection.covers(narrowed)


class TestBulkMarkPaid:
    @pytest.fixture
    def store(self):
        return MemoryDocumentStore({
            "salaries": {
                "asha": {"2025-09": {"baseSalary": 42000, "paymentStatus": "pending", "calculatedAt": 1}},
                "vikram": {"2025-09": {"baseSalary": 30000, "paymentStatus": "pending", "calculatedAt": 1}},
            },
        })

    def test_only_existing_records_are_written(self, store):
        records = PayrollRecordStore.from_snapshot(store.get("salaries"))
        attempted = bulk_mark_paid(store, records, ["asha", "bala"], "2025-09", timestamp_ms=1759000000000)
        assert attempted == ["asha"]
        assert store.get("salaries/asha/2025-09/paymentStatus") == "paid"
        assert store.get("salaries/asha/2025-09/calculatedAt") == 1759000000000
        assert store.get("salaries/bala") is None

    def test_other_fields_are_preserved(self, store):
        records = PayrollRecordStore.from_snapshot(store.get("salaries"))
        bulk_mark_paid(store, records, ["vikram"], "2025-09", timestamp_ms=5)
        assert store.get("salaries/vikram/2025-09")["baseSalary"] == 30000

    def test_records_of_other_months_are_untouched(self, store):
        records = PayrollRecordStore.from_snapshot(store.get("salaries"))
        assert bulk_mark_paid(store, records, ["asha"], "2025-10") == []
        assert store.get("salaries/asha/2025-09/paymentStatus") == "pending"

    def test_failed_write_does_not_stop_the_rest(self):
        store = FlakyDocumentStore({
            "salaries": {
                "asha": {"2025-09": {"paymentStatus": "pending"}},
                "vikram": {"2025-09": {"paymentStatus": "pending"}},
            },
        })
        store.fail_writes_under.add("salaries/asha")
        failures = []
        records = PayrollRecordStore.from_snapshot(store.get("salaries"))
        attempted = bulk_mark_paid(
            store, records, ["asha", "vikram"], "2025-09",
            timestamp_ms=7, on_failure=lambda emp, exc: failures.append(emp),
        )
        assert attempted == ["asha", "vikram"]
        assert failures == ["asha"]
        assert store.get("salaries/asha/2025-09/paymentStatus") == "pending"
        assert store.get("salaries/vikram/2025-09/paymentStatus") == "paid"

    def test_duplicate_ids_written_once(self, store):
        records = PayrollRecordStore.from_snapshot(store.get("salaries"))
        assert bulk_mark_paid(store, records, ["asha", "asha"], "2025-09") == ["asha"]


class TestOverview:
    def test_summary_counts_missing_as_pending(self, roster, payroll):
        summary = summarize(build_view(roster, payroll, {}))
        assert summary.total_payroll == Decimal("102000")
        assert (summary.paid_count, summary.pending_count, summary.disputed_count) == (1, 2, 1)

    def test_department_totals(self, roster, payroll):
        totals = department_totals(build_view(roster, payroll, {}))
        assert totals == {"Site A": Decimal("72000"), "Site B": Decimal("30000")}

    def test_salary_history_sorted_with_totals(self):
        records = PayrollRecordStore()
        for ym, base, days in [("2025-07", 100, 20), ("2025-09", 300, 22), ("2025-08", 200, 21)]:
            records.put(_record("asha", base, year_month=ym).model_copy(update={"attendance_days": days}))
        records.put(_record("vikram", 999, year_month="2025-08"))

        history = salary_history(records, "asha")
        assert [r.year_month for r in history.records] == ["2025-09", "2025-08", "2025-07"]
        assert history.total_net_salary == Decimal("600")
        assert history.total_attendance_days == 63

        ascending = salary_history(records, "asha", order="asc")
        assert [r.year_month for r in ascending.records] == ["2025-07", "2025-08", "2025-09"]

        one = salary_history(records, "asha", "2025-08")
        assert [r.net_salary for r in one.records] == [Decimal("200")]
