"""
Bounded audit log of command invocations.
"""

from __future__ import annotations

import threading
from collections import deque

from execguard._types import ExecutionRecord

DEFAULT_HISTORY_SIZE = 100


class HistoryLedger:
    """
    Fixed-capacity FIFO of ExecutionRecords, safe under concurrent writers.

    A single lock guards a ``deque(maxlen=capacity)``: appending and evicting
    the oldest entry happen in one step, and the size is always read from the
    deque itself.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._records: deque[ExecutionRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: ExecutionRecord) -> None:
        """Add ``record``, evicting the oldest entry when full."""
        with self._lock:
            self._records.append(record)

    def snapshot(self) -> tuple[ExecutionRecord, ...]:
        """Return the current entries, oldest first."""
        with self._lock:
            return tuple(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
