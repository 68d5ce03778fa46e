"""Process-local TTL cache"""
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """
    Small key/value cache with a fixed time-to-live.

    Entries are checked for staleness on read and dropped when stale.
    `timer` is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float, timer: Callable[[], float] = time.monotonic, max_entries: int = 256):
        self._ttl = ttl_seconds
        self._timer = timer
        self._max_entries = max_entries
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def is_stale(self, stored_at: float) -> bool:
        return self._timer() - stored_at >= self._ttl

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self.is_stale(stored_at):
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict_locked()
            self._entries[key] = (value, self._timer())

    def _evict_locked(self) -> None:
        for key in [k for k, (_, at) in self._entries.items() if self.is_stale(at)]:
            del self._entries[key]
        if len(self._entries) >= self._max_entries:
            # drop the oldest entry
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
