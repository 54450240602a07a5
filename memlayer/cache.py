"""
Result cache with a time-to-live.

Owned by one orchestrator instance; never a process-wide singleton. An
entry is replaced as a whole, so a reader sees either the old entry or the
new one, never something in between.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from memlayer.log import get_logger

logger = get_logger("cache")

ALL_MEMORIES_KEY = "all_memories"


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    created_at: float


class ResultCache:
    """Keyed result lists that expire `ttl_seconds` after they were stored."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 32,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached data, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if self._clock() - entry.created_at >= self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                logger.debug(f"Cache entry '{key}' expired")
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.data

    def set(self, key: str, data: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data=data, created_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
