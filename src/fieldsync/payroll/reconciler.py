"""PayrollReconciler: joined, filtered, sorted payroll view and bulk status changes."""

from __future__ import annotations

import time
from decimal import Decimal
from enum import StrEnum
from typing import Callable, Iterable, Mapping, Sequence

from loguru import logger
from pydantic import BaseModel, Field

from fieldsync.core.exceptions import StoreError
from fieldsync.core.protocols import IDocumentStore
from fieldsync.core.types import EmployeeId, Username, YearMonth
from fieldsync.models.employee import Employee
from fieldsync.models.payroll import PaymentStatus, PayrollRecord
from fieldsync.payroll.records import PayrollRecordStore, record_path


class SortField(StrEnum):
    NAME = "name"
    NET_SALARY = "netSalary"
    PAYMENT_STATUS = "paymentStatus"
    MATERIAL_SPENT = "materialSpent"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class SortState(BaseModel):
    """Active sort column and direction."""

    field: SortField = SortField.NAME
    order: SortOrder = SortOrder.ASC

    def toggle(self, field: SortField | str) -> SortState:
        """Same field flips the direction; a different field resets to ascending."""
        field = SortField(field)
        if field == self.field:
            order = SortOrder.DESC if self.order == SortOrder.ASC else SortOrder.ASC
            return SortState(field=field, order=order)
        return SortState(field=field, order=SortOrder.ASC)


def toggle_sort_field(state: SortState, field: SortField | str) -> SortState:
    return state.toggle(field)


class PayrollViewRow(BaseModel):
    """One employee in the reconciled view. `record` is None when no payroll exists yet."""

    employee: Employee
    record: PayrollRecord | None = None
    material_cost: Decimal = Decimal("0")
    working_days: int = 0
    leave_days: int = 0

    @property
    def net_salary(self) -> Decimal:
        return self.record.net_salary if self.record is not None else Decimal("0")

    @property
    def payment_status(self) -> PaymentStatus:
        return self.record.payment_status if self.record is not None else PaymentStatus.PENDING


_SORT_KEYS = {
    SortField.NAME: lambda row: row.employee.name.casefold(),
    SortField.NET_SALARY: lambda row: row.net_salary,
    SortField.PAYMENT_STATUS: lambda row: str(row.payment_status),
    SortField.MATERIAL_SPENT: lambda row: row.material_cost,
}


def build_view(
    employees: Iterable[Employee],
    payroll_by_employee: Mapping[EmployeeId, PayrollRecord],
    material_cost_by_user: Mapping[Username, Decimal],
    text_filter: str = "",
    sort_field: SortField | str = SortField.NAME,
    sort_order: SortOrder | str = SortOrder.ASC,
    working_days_by_user: Mapping[Username, int] | None = None,
    leave_days_by_user: Mapping[Username, int] | None = None,
) -> list[PayrollViewRow]:
    """Filter the roster by name/username and sort it.

    Employees without a record are kept and ranked as net 0, status pending,
    material 0. Present and approved-leave day counts are keyed by username and
    default to 0. Ties keep roster order in either direction.
    """
    working_days_by_user = working_days_by_user or {}
    leave_days_by_user = leave_days_by_user or {}
    rows = [
        PayrollViewRow(
            employee=employee,
            record=payroll_by_employee.get(employee.id),
            material_cost=material_cost_by_user.get(employee.username, Decimal("0")),
            working_days=working_days_by_user.get(employee.username, 0),
            leave_days=leave_days_by_user.get(employee.username, 0),
        )
        for employee in employees
        if employee.matches(text_filter)
    ]
    return sorted(
        rows,
        key=_SORT_KEYS[SortField(sort_field)],
        reverse=SortOrder(sort_order) == SortOrder.DESC,
    )


class Selection:
    """Employee ids ticked for a bulk action.

    `select_all` takes the ids of the view it is given. Later filter changes do
    not prune the selection, so hidden employees stay selected.
    """

    def __init__(self, ids: Iterable[EmployeeId] = ()) -> None:
        self._ids: list[EmployeeId] = list(dict.fromkeys(ids))

    @property
    def ids(self) -> list[EmployeeId]:
        return list(self._ids)

    def __contains__(self, employee_id: object) -> bool:
        return employee_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def select_all(self, view: Sequence[PayrollViewRow]) -> None:
        self._ids = [row.employee.id for row in view]

    def select_none(self) -> None:
        self._ids = []

    def toggle_one(self, employee_id: EmployeeId) -> None:
        if employee_id in self._ids:
            self._ids.remove(employee_id)
        else:
            self._ids.append(employee_id)

    def covers(self, view: Sequence[PayrollViewRow]) -> bool:
        """True when every row of the view is selected (the "select all" checkbox state)."""
        return bool(view) and all(row.employee.id in self._ids for row in view)


def now_millis() -> int:
    return int(time.time() * 1000)


def bulk_mark_paid(
    store: IDocumentStore,
    records: PayrollRecordStore,
    employee_ids: Iterable[EmployeeId],
    year_month: YearMonth,
    *,
    collection: str = "salaries",
    timestamp_ms: int | None = None,
    on_failure: Callable[[EmployeeId, StoreError], None] | None = None,
) -> list[EmployeeId]:
    """Mark every existing record among `employee_ids` as paid for the month.

    One independent write per employee; ids without a record are skipped and no
    record is created. A failed write is logged and does not stop or undo the
    others. Returns the ids a write was attempted for.
    """
    stamp = timestamp_ms if timestamp_ms is not None else now_millis()
    attempted: list[EmployeeId] = []
    for employee_id in dict.fromkeys(employee_ids):
        if records.get(employee_id, year_month) is None:
            continue
        attempted.append(employee_id)
        path = record_path(collection, employee_id, year_month)
        try:
            store.update(path, {"paymentStatus": PaymentStatus.PAID.value, "calculatedAt": stamp})
        except StoreError as exc:
            logger.warning(f"Mark-paid write failed for {employee_id} {year_month}: {exc}")
            if on_failure is not None:
                on_failure(employee_id, exc)
    logger.info(f"Mark-paid attempted for {len(attempted)} record(s) in {year_month}")
    return attempted


# ---------------------------------------------------------------------------
# Overview figures
# ---------------------------------------------------------------------------

class PayrollSummary(BaseModel):
    total_payroll: Decimal = Decimal("0")
    paid_count: int = 0
    pending_count: int = 0
    disputed_count: int = 0


def summarize(rows: Iterable[PayrollViewRow]) -> PayrollSummary:
    summary = PayrollSummary()
    for row in rows:
        summary.total_payroll += row.net_salary
        status = row.payment_status
        if status == PaymentStatus.PAID:
            summary.paid_count += 1
        elif status == PaymentStatus.DISPUTED:
            summary.disputed_count += 1
        else:
            summary.pending_count += 1
    return summary


def department_totals(rows: Iterable[PayrollViewRow]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for row in rows:
        dept = row.employee.department
        totals[dept] = totals.get(dept, Decimal("0")) + row.net_salary
    return totals


class SalaryHistory(BaseModel):
    employee_id: str
    records: list[PayrollRecord] = Field(default_factory=list)
    total_net_salary: Decimal = Decimal("0")
    total_attendance_days: int = 0


def salary_history(
    records: PayrollRecordStore,
    employee_id: EmployeeId,
    year_month: YearMonth | None = None,
    order: SortOrder | str = SortOrder.DESC,
) -> SalaryHistory:
    """Records of one employee, newest first by default, with running totals."""
    history = records.for_employee(employee_id)
    if year_month:
        history = [r for r in history if r.year_month == year_month]
    history.sort(key=lambda r: r.year_month, reverse=SortOrder(order) == SortOrder.DESC)
    return SalaryHistory(
        employee_id=employee_id,
        records=history,
        total_net_salary=sum((r.net_salary for r in history), Decimal("0")),
        total_attendance_days=sum(r.attendance_days for r in history),
    )
