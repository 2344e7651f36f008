"""CostAggregator: per-user approved material spend for a reporting month.

Costs use the catalogue price at read time, not the price when the request was
approved, so editing a price restates every month that used the material.
"""

from __future__ import annotations

from datetime import tzinfo
from decimal import Decimal
from typing import Iterable

from fieldsync.core.periods import MonthWindow
from fieldsync.core.types import Username
from fieldsync.models.materials import MaterialRequest
from fieldsync.payroll.ledger import MaterialRequestLedger
from fieldsync.payroll.pricing import MaterialPricingIndex


def aggregate_material_costs(
    requests: MaterialRequestLedger | Iterable[MaterialRequest],
    pricing: MaterialPricingIndex,
    year: int,
    month: int,
    username_filter: str = "",
    tz: tzinfo | None = None,
) -> dict[Username, Decimal]:
    """Sum quantity x unit price per username over countable requests."""
    ledger = requests if isinstance(requests, MaterialRequestLedger) else MaterialRequestLedger(requests)
    window = MonthWindow.for_month(year, month, tz)

    cost: dict[Username, Decimal] = {}
    for request in ledger.countable(window, username_filter):
        if not request.username or not request.material_id:
            continue
        amount = request.quantity_requested * pricing.price_of(request.material_id)
        cost[request.username] = cost.get(request.username, Decimal("0")) + amount
    return cost


class CostAggregator:
    """Holds the aggregation inputs; every call recomputes from them."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz

    def costs_for(
        self,
        ledger: MaterialRequestLedger,
        pricing: MaterialPricingIndex,
        year_month: str,
        username_filter: str = "",
    ) -> dict[Username, Decimal]:
        window = MonthWindow.for_year_month(year_month, self._tz)
        return aggregate_material_costs(
            ledger, pricing, window.year, window.month, username_filter, self._tz
        )
