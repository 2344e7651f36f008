"""PayrollRecordStore: keyed container of PayrollRecord by (employee, month)."""

from __future__ import annotations

from typing import Any, Iterator

from fieldsync.core.types import EmployeeId, YearMonth
from fieldsync.models.payroll import PayrollRecord


class PayrollRecordStore:
    """In-memory view of the payroll collection (`salaries/{employee}/{YYYY-MM}`).

    A missing record is not an error: `get` returns None, meaning no payroll has
    been computed for that employee and month yet.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[EmployeeId, YearMonth], PayrollRecord] = {}

    @classmethod
    def from_snapshot(cls, data: Any) -> PayrollRecordStore:
        store = cls()
        if not isinstance(data, dict):
            return store
        for employee_id, months in data.items():
            if not isinstance(months, dict):
                continue
            for year_month, doc in months.items():
                store.put(PayrollRecord.from_document(
                    doc, employeeId=employee_id, yearMonth=year_month,
                ))
        return store

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PayrollRecord]:
        return iter(self._records.values())

    def get(self, employee_id: EmployeeId, year_month: YearMonth) -> PayrollRecord | None:
        return self._records.get((employee_id, year_month))

    def put(self, record: PayrollRecord) -> None:
        self._records[(record.employee_id, record.year_month)] = record

    def for_month(self, year_month: YearMonth) -> dict[EmployeeId, PayrollRecord]:
        return {emp: rec for (emp, ym), rec in self._records.items() if ym == year_month}

    def for_employee(self, employee_id: EmployeeId) -> list[PayrollRecord]:
        return [rec for (emp, _), rec in self._records.items() if emp == employee_id]


def record_path(collection: str, employee_id: EmployeeId, year_month: YearMonth) -> str:
    return f"{collection}/{employee_id}/{year_month}"
