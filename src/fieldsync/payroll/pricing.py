"""MaterialPricingIndex: material id to current unit price."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping

from fieldsync.core.types import MaterialId
from fieldsync.models.materials import Material


class MaterialPricingIndex(Mapping[MaterialId, Decimal]):
    """Read-only projection of the material catalogue.

    Lookups for unknown or deleted materials resolve to 0 rather than failing.
    """

    def __init__(self, prices: Mapping[MaterialId, Decimal] | None = None) -> None:
        self._prices: dict[MaterialId, Decimal] = dict(prices or {})

    @classmethod
    def from_materials(cls, materials: Iterable[Material]) -> MaterialPricingIndex:
        return cls({m.id: m.price for m in materials})

    def price_of(self, material_id: MaterialId) -> Decimal:
        return self._prices.get(material_id, Decimal("0"))

    def __getitem__(self, material_id: MaterialId) -> Decimal:
        return self._prices[material_id]

    def __iter__(self):
        return iter(self._prices)

    def __len__(self) -> int:
        return len(self._prices)
