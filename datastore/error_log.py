from __future__ import annotations

from collections import deque
from datetime import datetime
from threading import Lock
from typing import Callable, Deque

DEFAULT_CAPACITY = 100


class ErrorLog:
    """Bounded, timestamped history of import errors; oldest entries go first."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if capacity <= 0:
            raise ValueError("Error log capacity must be positive.")
        self.capacity = capacity
        self._clock = clock
        self._entries: Deque[str] = deque(maxlen=capacity)
        self._lock = Lock()

    def append(self, message: str) -> str:
        with self._lock:
            entry = f"{self._clock().isoformat()}: {message}"
            self._entries.append(entry)
        return entry

    def entries(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
