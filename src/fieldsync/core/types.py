"""Type aliases used across FieldSync."""

from __future__ import annotations

from typing import Any, Callable

JsonDict = dict[str, Any]
EmployeeId = str
Username = str
MaterialId = str
YearMonth = str  # "YYYY-MM"
EpochMillis = int

SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]
