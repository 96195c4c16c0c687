import threading
from collections import Counter
from typing import Dict


class RequestCounter:
    """Per-route hit counter owned by the app; safe to share across threads."""

    def __init__(self):
        self._counts = Counter()
        self._lock = threading.Lock()

    def increment(self, key: str) -> int:
        with self._lock:
            self._counts[key] += 1
            return self._counts[key]

    def get(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)
