"""Employee roster entries as referenced by payroll."""

from __future__ import annotations

from typing import Any

from fieldsync.models.base import DocumentModel


class Employee(DocumentModel):
    """Roster entry. `id` is the login name, matching how payroll and attendance are keyed."""

    id: str = ""
    name: str = ""
    username: str = ""
    role: str = "worker"
    department: str = "General"

    model_config = {"str_strip_whitespace": True}

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match on display name or login name."""
        if not text:
            return True
        needle = text.lower()
        return needle in self.name.lower() or needle in self.username.lower()


def employees_from_snapshot(
    data: Any,
    *,
    default_role: str = "worker",
    default_department: str = "General",
    limit: int | None = None,
) -> list[Employee]:
    """Normalize a `users` snapshot into a de-duplicated roster.

    Entries without a name or username are dropped; the first entry for a
    username wins.
    """
    if not isinstance(data, dict):
        return []

    roster: list[Employee] = []
    seen: set[str] = set()
    entries = list(data.values())
    if limit is not None:
        entries = entries[:limit]
    for entry in entries:
        raw = entry if isinstance(entry, dict) else {}
        employee = Employee.from_document(
            raw,
            id=raw.get("username", ""),
            role=raw.get("role") or default_role,
            department=raw.get("department") or default_department,
        )
        if not employee.name or not employee.username or employee.username in seen:
            continue
        seen.add(employee.username)
        roster.append(employee)
    return roster
