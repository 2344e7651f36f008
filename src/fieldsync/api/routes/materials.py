"""Material spend endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fieldsync.api.routes.deps import checked_year_month, fresh_context
from fieldsync.payroll.context import PayrollContext
from fieldsync.persistence.documents import to_plain

router = APIRouter(tags=["materials"])


@router.get("/costs/{year_month}")
def get_costs(
    year_month: str = Depends(checked_year_month),
    username: str = "",
    context: PayrollContext = Depends(fresh_context),
) -> dict:
    """Approved material spend per username for the month."""
    costs = context.cost_aggregator.costs_for(context.ledger, context.pricing, year_month, username)
    return {"yearMonth": year_month, "costs": to_plain(costs)}
