"""Material catalogue and material requisition models."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import Field

from fieldsync.models.base import DocumentModel


class RequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Material(DocumentModel):
    """Catalogue entry. Cost reporting reads `price` at read time."""

    id: str = ""
    name: str = ""
    price: Decimal = Field(default=Decimal("0"), ge=0)


class MaterialRequest(DocumentModel):
    """A requisition raised by a site user and answered by an approver."""

    id: str = ""
    material_id: str = ""
    material_name: str = ""
    quantity_requested: int = Field(default=0, ge=0)
    requested_at: int = 0  # epoch ms
    responded_at: int = 0  # epoch ms, 0 while unanswered
    response_message: str = ""
    status: str = ""  # free-form; only RequestStatus.APPROVED counts toward cost
    user_id: str = ""
    username: str = ""

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED


def materials_from_snapshot(data: Any) -> list[Material]:
    if not isinstance(data, dict):
        return []
    return [Material.from_document(doc, id=key) for key, doc in data.items()]


def requests_from_snapshot(data: Any) -> list[MaterialRequest]:
    if not isinstance(data, dict):
        return []
    return [MaterialRequest.from_document(doc, id=key) for key, doc in data.items()]
