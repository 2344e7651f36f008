"""FieldSync exception hierarchy."""

from __future__ import annotations


class FieldSyncError(Exception):
    """Base exception for all FieldSync errors."""


class StoreError(FieldSyncError):
    """Document store operation failed."""


class SubscriptionError(StoreError):
    """A live subscription could not deliver a snapshot."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Subscription to {path!r} failed: {message}")


class WriteError(StoreError):
    """A write against the document store failed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Write to {path!r} failed: {message}")


class InvalidYearMonthError(FieldSyncError, ValueError):
    """Year-month key is not of the form YYYY-MM."""


class InvalidPayrollInputError(FieldSyncError, ValueError):
    """Edited payroll figures failed validation."""

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field}: {value!r}")
