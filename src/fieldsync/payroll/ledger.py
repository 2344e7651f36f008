"""MaterialRequestLedger: requisitions and the subset that counts toward cost."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from fieldsync.core.periods import MonthWindow
from fieldsync.models.materials import MaterialRequest, requests_from_snapshot


class MaterialRequestLedger:
    """Holds the latest full set of material requests."""

    def __init__(self, requests: Iterable[MaterialRequest] = ()) -> None:
        self._requests = list(requests)

    @classmethod
    def from_snapshot(cls, data: Any) -> MaterialRequestLedger:
        return cls(requests_from_snapshot(data))

    def __iter__(self) -> Iterator[MaterialRequest]:
        return iter(self._requests)

    def __len__(self) -> int:
        return len(self._requests)

    def countable(self, window: MonthWindow, username_filter: str = "") -> list[MaterialRequest]:
        """Approved requests answered inside the window whose username matches the filter.

        Unanswered requests (`responded_at == 0`) never count.
        """
        needle = username_filter.lower()
        return [
            r for r in self._requests
            if r.is_approved
            and (not needle or needle in r.username.lower())
            and r.responded_at != 0
            and window.contains(r.responded_at)
        ]
