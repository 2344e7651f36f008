"""Shared request helpers for the API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request

from fieldsync.core.exceptions import InvalidYearMonthError
from fieldsync.core.periods import parse_year_month
from fieldsync.payroll.context import PayrollContext


def fresh_context(request: Request) -> PayrollContext:
    """The app's payroll context with any pending store notifications applied."""
    context: PayrollContext = request.app.state.context
    context.poll()
    return context


def checked_year_month(year_month: str) -> str:
    try:
        parse_year_month(year_month)
    except InvalidYearMonthError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return year_month
