"""
Append-only timeline of records, the storage both sides of a comparison use.
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple

from marble_assert.models import RenderConfig, TimelineRecord


class Timeline:
    """
    Ordered log of symbols written at frames, e.g. ``--a--b--c``.

    Records must be added in non-decreasing frame order; this is not
    validated. The renderer reads a private copy and never mutates the log.
    """

    def __init__(self) -> None:
        self._records: List[TimelineRecord] = []

    @property
    def items(self) -> Tuple[TimelineRecord, ...]:
        """Read-only snapshot of the records, in insertion order."""
        return tuple(self._records)

    def add(self, frame: int, key: str, value: Any = None) -> TimelineRecord:
        """Append a symbol to be written at the given frame."""
        record = TimelineRecord(frame, key, value)
        self._records.append(record)
        return record

    def print(self, config: Optional[RenderConfig] = None) -> str:
        """Pretty-print this timeline on its own."""
        from marble_assert.renderer import print_timeline

        return print_timeline(self, config)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Timeline({len(self._records)} records)"
