"""PayrollContext: owns the live subscriptions and recomputes the payroll view.

Each collection is an independent subscription delivering full snapshots; a
snapshot replaces everything previously cached for that collection. Derived
figures (material cost, view, summary) are recomputed from the current
snapshots on every call and pushed to change listeners after every snapshot
or filter change. Nothing derived is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Literal

from loguru import logger

from fieldsync.core.config import AppSettings
from fieldsync.core.exceptions import InvalidPayrollInputError, StoreError
from fieldsync.core.periods import MonthWindow, parse_year_month, resolve_timezone
from fieldsync.core.protocols import IDocumentStore
from fieldsync.core.types import EmployeeId, Unsubscribe, Username, YearMonth
from fieldsync.models.employee import Employee, employees_from_snapshot
from fieldsync.models.materials import materials_from_snapshot
from fieldsync.models.payroll import PayrollEdit, PayrollRecord
from fieldsync.payroll.attendance import attendance_days, leave_days
from fieldsync.payroll.costs import CostAggregator
from fieldsync.payroll.ledger import MaterialRequestLedger
from fieldsync.payroll.pricing import MaterialPricingIndex
from fieldsync.payroll.reconciler import (
    PayrollSummary,
    PayrollViewRow,
    SalaryHistory,
    Selection,
    SortField,
    SortOrder,
    SortState,
    build_view,
    bulk_mark_paid,
    department_totals,
    now_millis,
    salary_history,
    summarize,
)
from fieldsync.payroll.records import PayrollRecordStore, record_path


@dataclass(frozen=True)
class Notice:
    """User-facing notification raised by the context."""

    message: str
    kind: Literal["error", "success"] = "success"


ViewListener = Callable[[list[PayrollViewRow]], None]


class PayrollContext:
    """Reconciliation state for one payroll screen."""

    def __init__(
        self,
        store: IDocumentStore,
        settings: AppSettings | None = None,
        *,
        year_month: YearMonth | None = None,
        on_notice: Callable[[Notice], None] | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._store = store
        self._settings = settings or AppSettings()
        self._collections = self._settings.collections
        self._tz = resolve_timezone(self._settings.timezone)
        self._clock = clock
        self._on_notice = on_notice
        self._listeners: list[ViewListener] = []
        self._unsubscribes: dict[str, Unsubscribe] = {}

        self.employees: list[Employee] = []
        self.ledger = MaterialRequestLedger()
        self.pricing = MaterialPricingIndex()
        self.records = PayrollRecordStore()
        self._attendance: Any = None
        self._leave: Any = None

        if year_month is None:
            year_month = datetime.fromtimestamp(clock() / 1000, self._tz).strftime("%Y-%m")
        parse_year_month(year_month)
        self.year_month: YearMonth = year_month
        self.text_filter = ""
        self.username_filter = ""
        self.sort = SortState()
        self.selection = Selection()
        self.cost_aggregator = CostAggregator(self._tz)

    # ---- subscription lifecycle ----

    def start(self) -> None:
        """Open one subscription per collection. Safe to call again after `close`."""
        handlers: dict[str, Callable[[Any], None]] = {
            self._collections.users: self._on_users,
            self._collections.material_requests: self._on_material_requests,
            self._collections.materials: self._on_materials,
            self._collections.payroll: self._on_payroll,
            self._collections.attendance: self._on_attendance,
            self._collections.leave_requests: self._on_leave,
        }
        for path, handler in handlers.items():
            if path in self._unsubscribes:
                continue
            try:
                self._unsubscribes[path] = self._store.subscribe(path, handler, self._error_handler(path))
            except StoreError as exc:
                self._error_handler(path)(exc)

    def unsubscribe(self, path: str) -> None:
        unsubscribe = self._unsubscribes.pop(path, None)
        if unsubscribe is not None:
            unsubscribe()

    def close(self) -> None:
        for path in list(self._unsubscribes):
            self.unsubscribe(path)
        self._listeners.clear()

    @property
    def subscribed_paths(self) -> list[str]:
        return list(self._unsubscribes)

    def poll(self) -> int:
        """Let the store deliver pending snapshots (no-op for push-style stores)."""
        try:
            return self._store.poll()
        except StoreError as exc:
            self._notify(Notice(f"Failed to refresh data: {exc}", "error"))
            return 0

    def _error_handler(self, path: str) -> Callable[[Exception], None]:
        def on_error(exc: Exception) -> None:
            logger.error(f"Subscription to {path!r} failed, keeping last snapshot: {exc}")
            self._notify(Notice(f"Failed to fetch {path}: {exc}", "error"))

        return on_error

    # ---- snapshot handlers ----

    def _on_users(self, data: Any) -> None:
        payroll = self._settings.payroll
        self.employees = employees_from_snapshot(
            data,
            default_role=payroll.default_role,
            default_department=payroll.default_department,
            limit=payroll.user_limit,
        )
        logger.debug(f"Roster replaced: {len(self.employees)} employee(s)")
        if not self.employees:
            self._notify(Notice("No employees found", "error"))
        self._changed()

    def _on_material_requests(self, data: Any) -> None:
        self.ledger = MaterialRequestLedger.from_snapshot(data)
        logger.debug(f"Material requests replaced: {len(self.ledger)} request(s)")
        self._changed()

    def _on_materials(self, data: Any) -> None:
        self.pricing = MaterialPricingIndex.from_materials(materials_from_snapshot(data))
        logger.debug(f"Material prices replaced: {len(self.pricing)} material(s)")
        self._changed()

    def _on_payroll(self, data: Any) -> None:
        self.records = PayrollRecordStore.from_snapshot(data)
        logger.debug(f"Payroll records replaced: {len(self.records)} record(s)")
        self._changed()

    def _on_attendance(self, data: Any) -> None:
        self._attendance = data
        self._changed()

    def _on_leave(self, data: Any) -> None:
        self._leave = data
        self._changed()

    # ---- view state ----

    def set_month(self, year_month: YearMonth) -> None:
        parse_year_month(year_month)
        self.year_month = year_month
        self._changed()

    def set_text_filter(self, text: str) -> None:
        self.text_filter = text or ""
        self._changed()

    def set_username_filter(self, text: str) -> None:
        self.username_filter = text or ""
        self._changed()

    def toggle_sort(self, field: SortField | str) -> SortState:
        self.sort = self.sort.toggle(field)
        self._changed()
        return self.sort

    def on_change(self, listener: ViewListener) -> Callable[[], None]:
        """Register a listener that receives the freshly built view after every change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _changed(self) -> None:
        if not self._listeners:
            return
        rows = self.view()
        for listener in list(self._listeners):
            listener(rows)

    def _notify(self, notice: Notice) -> None:
        if self._on_notice is not None:
            self._on_notice(notice)

    # ---- derived values ----

    @property
    def window(self) -> MonthWindow:
        return MonthWindow.for_year_month(self.year_month, self._tz)

    def material_costs(self) -> dict[Username, Decimal]:
        return self.cost_aggregator.costs_for(
            self.ledger, self.pricing, self.year_month, self.username_filter
        )

    def view(self) -> list[PayrollViewRow]:
        return build_view(
            self.employees,
            self.records.for_month(self.year_month),
            self.material_costs(),
            self.text_filter,
            self.sort.field,
            self.sort.order,
            self.attendance_days(),
            self.leave_days(),
        )

    def summary(self) -> PayrollSummary:
        return summarize(self.view())

    def department_totals(self) -> dict[str, Decimal]:
        return department_totals(self.view())

    def _window_for(self, year_month: YearMonth | None) -> MonthWindow:
        return MonthWindow.for_year_month(year_month, self._tz) if year_month else self.window

    def attendance_days(self, year_month: YearMonth | None = None) -> dict[Username, int]:
        return attendance_days(self._attendance, self._window_for(year_month))

    def leave_days(self, year_month: YearMonth | None = None) -> dict[Username, int]:
        return leave_days(self._leave, self._window_for(year_month))

    def history(
        self,
        employee_id: EmployeeId,
        year_month: YearMonth | None = None,
        order: SortOrder | str = SortOrder.DESC,
    ) -> SalaryHistory:
        return salary_history(self.records, employee_id, year_month, order)

    # ---- selection ----

    def select_all(self) -> None:
        self.selection.select_all(self.view())

    def select_none(self) -> None:
        self.selection.select_none()

    def toggle_one(self, employee_id: EmployeeId) -> None:
        self.selection.toggle_one(employee_id)

    # ---- writes ----

    def bulk_mark_paid(
        self, employee_ids: list[EmployeeId] | None = None, year_month: YearMonth | None = None
    ) -> list[EmployeeId]:
        """Mark the given (default: selected) employees paid for the month (default: current)."""
        ids = self.selection.ids if employee_ids is None else employee_ids
        year_month = year_month or self.year_month
        parse_year_month(year_month)

        def on_failure(employee_id: EmployeeId, exc: StoreError) -> None:
            self._notify(Notice(f"Failed to mark {employee_id} as paid: {exc}", "error"))

        attempted = bulk_mark_paid(
            self._store,
            self.records,
            ids,
            year_month,
            collection=self._collections.payroll,
            timestamp_ms=self._clock(),
            on_failure=on_failure,
        )
        if attempted:
            self._notify(Notice("Selected salaries marked as paid"))
        return attempted

    def save_record(
        self, employee_id: EmployeeId, edit: PayrollEdit, year_month: YearMonth | None = None
    ) -> PayrollRecord:
        """Validate edited figures and write the whole record for the month (default: current)."""
        year_month = year_month or self.year_month
        parse_year_month(year_month)
        for field in ("base_salary", "overtime_hours", "overtime_pay"):
            value = getattr(edit, field)
            if not value.is_finite() or value < 0:
                raise InvalidPayrollInputError(field, value)

        days = edit.attendance_days
        if days is None:
            employee = next((e for e in self.employees if e.id == employee_id), None)
            username = employee.username if employee is not None else employee_id
            days = self.attendance_days(year_month).get(username, 0)

        record = PayrollRecord(
            employee_id=employee_id,
            year_month=year_month,
            base_salary=edit.base_salary,
            overtime_hours=edit.overtime_hours,
            overtime_pay=edit.overtime_pay,
            allowances=edit.allowances,
            deductions=edit.deductions,
            payment_status=edit.payment_status,
            attendance_days=days,
            calculated_at=self._clock(),
        )
        if record.net_salary < 0:
            logger.warning(f"Net salary for {employee_id} {year_month} is negative: {record.net_salary}")

        path = record_path(self._collections.payroll, employee_id, year_month)
        try:
            self._store.set(path, record.model_dump(by_alias=True, exclude={"employee_id"}))
        except StoreError:
            self._notify(Notice("Failed to update salary", "error"))
            raise
        self._notify(Notice("Salary updated successfully"))
        return record
