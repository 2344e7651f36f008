"""Monthly payroll record: one per employee per YYYY-MM.

Net salary is never read from storage; it is derived from the record's
constituents every time it is accessed and written alongside them so other
readers of the store see the current figure.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from fieldsync.models.base import DocumentModel


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class Allowance(DocumentModel):
    label: str = Field(default="", alias="name")
    amount: Decimal = Decimal("0")


class Deduction(DocumentModel):
    label: str = Field(default="", alias="name")
    amount: Decimal = Decimal("0")
    is_statutory: bool = False


class PayrollRecord(DocumentModel):
    """Salary record for one employee and month."""

    employee_id: str = ""
    year_month: str = ""
    base_salary: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    overtime_pay: Decimal = Decimal("0")
    allowances: list[Allowance] = Field(default_factory=list)
    deductions: list[Deduction] = Field(default_factory=list)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    attendance_days: int = 0
    calculated_at: int = 0  # epoch ms of the last write

    @field_validator("allowances", "deductions", mode="before")
    @classmethod
    def _keep_document_entries(cls, value: Any) -> Any:
        """Drop non-mapping entries so one bad line item does not discard the rest.

        Sparse arrays may also arrive as index-keyed mappings.
        """
        if isinstance(value, dict):
            value = list(value.values())
        if not isinstance(value, list):
            return value
        return [entry for entry in value if isinstance(entry, (dict, BaseModel))]

    @property
    def total_allowances(self) -> Decimal:
        return sum((a.amount for a in self.allowances), Decimal("0"))

    @property
    def total_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), Decimal("0"))

    @property
    def statutory_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions if d.is_statutory), Decimal("0"))

    @computed_field(alias="netSalary")  # type: ignore[prop-decorator]
    @property
    def net_salary(self) -> Decimal:
        """base + overtime pay + allowances - deductions; may be negative."""
        return self.base_salary + self.overtime_pay + self.total_allowances - self.total_deductions


class PayrollEdit(BaseModel):
    """Figures submitted by the salary editor. Unlike stored documents, bad input is rejected."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    base_salary: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    overtime_pay: Decimal = Decimal("0")
    allowances: list[Allowance] = Field(default_factory=list)
    deductions: list[Deduction] = Field(default_factory=list)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    attendance_days: int | None = None  # None takes the month's attendance tally
