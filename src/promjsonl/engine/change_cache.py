"""
Last-written value per metric identity, for change-only export mode.

Lives for the lifetime of the process and is never persisted, so a
restart re-emits every metric once.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional


class ChangeCache:
    """Thread-safe map of metric key -> last emitted value.

    One exclusive lock guards reads and writes alike; there is no shared
    read mode.
    """

    def __init__(self):
        self._values: Dict[str, float] = {}
        self._lock = threading.Lock()

    def should_emit(self, key: str, value: float) -> bool:
        """Return True (and remember `value`) if this key is new or changed.

        Compare and update happen under one lock so two writers can't
        both see the old value and lose an update.
        """
        with self._lock:
            if key in self._values and self._values[key] == value:
                return False
            self._values[key] = value
            return True

    def get(self, key: str) -> Optional[float]:
        with self._lock:
            return self._values.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._values
