"""Payroll view, overview and write endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fieldsync.api.routes.deps import checked_year_month, fresh_context
from fieldsync.core.exceptions import InvalidPayrollInputError, StoreError
from fieldsync.models.payroll import PayrollEdit
from fieldsync.payroll.context import PayrollContext
from fieldsync.payroll.reconciler import (
    PayrollViewRow,
    SortField,
    SortOrder,
    build_view,
    department_totals,
    salary_history,
    summarize,
)
from fieldsync.persistence.documents import to_plain

router = APIRouter(tags=["payroll"])


class MarkPaidRequest(BaseModel):
    employee_ids: list[str] = Field(default_factory=list)


def _rows(context: PayrollContext, year_month: str, q: str = "", username: str = "",
          sort: SortField = SortField.NAME, order: SortOrder = SortOrder.ASC) -> list[PayrollViewRow]:
    costs = context.cost_aggregator.costs_for(context.ledger, context.pricing, year_month, username)
    return build_view(
        context.employees, context.records.for_month(year_month), costs, q, sort, order,
        context.attendance_days(year_month), context.leave_days(year_month),
    )


def _row_json(row: PayrollViewRow) -> dict[str, Any]:
    return {
        "employee": to_plain(row.employee),
        "record": to_plain(row.record) if row.record is not None else None,
        "netSalary": to_plain(row.net_salary),
        "paymentStatus": row.payment_status.value,
        "materialCost": to_plain(row.material_cost),
        "workingDays": row.working_days,
        "leaveDays": row.leave_days,
    }


@router.get("/history/{employee_id}")
def get_history(
    employee_id: str,
    month: str | None = None,
    order: SortOrder = SortOrder.DESC,
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    """Return every payroll record of one employee with totals."""
    if month:
        checked_year_month(month)
    history = salary_history(context.records, employee_id, month, order)
    return {
        "employeeId": employee_id,
        "records": [to_plain(r) for r in history.records],
        "totalNetSalary": to_plain(history.total_net_salary),
        "totalAttendanceDays": history.total_attendance_days,
    }


@router.get("/{year_month}")
def get_view(
    year_month: str = Depends(checked_year_month),
    q: str = "",
    username: str = "",
    sort: SortField = SortField.NAME,
    order: SortOrder = SortOrder.ASC,
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    """Return the filtered, sorted payroll view for a month."""
    rows = _rows(context, year_month, q, username, sort, order)
    return {"yearMonth": year_month, "rows": [_row_json(r) for r in rows]}


@router.get("/{year_month}/summary")
def get_summary(
    year_month: str = Depends(checked_year_month),
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    summary = summarize(_rows(context, year_month))
    return {
        "yearMonth": year_month,
        "totalPayroll": to_plain(summary.total_payroll),
        "paidCount": summary.paid_count,
        "pendingCount": summary.pending_count,
        "disputedCount": summary.disputed_count,
    }


@router.get("/{year_month}/departments")
def get_departments(
    year_month: str = Depends(checked_year_month),
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    totals = department_totals(_rows(context, year_month))
    return {
        "yearMonth": year_month,
        "departments": [{"department": d, "totalSalary": to_plain(t)} for d, t in totals.items()],
    }


@router.post("/{year_month}/mark-paid")
def mark_paid(
    body: MarkPaidRequest,
    year_month: str = Depends(checked_year_month),
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    """Mark existing records paid; ids without a record for the month are ignored."""
    attempted = context.bulk_mark_paid(body.employee_ids, year_month)
    return {"yearMonth": year_month, "attempted": attempted}


@router.put("/{year_month}/{employee_id}")
def put_record(
    employee_id: str,
    edit: PayrollEdit,
    year_month: str = Depends(checked_year_month),
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    """Replace one employee's record for the month."""
    try:
        record = context.save_record(employee_id, edit, year_month)
    except InvalidPayrollInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return to_plain(record)
