"""In-memory cache for analysis results."""
import hashlib
import json
import logging
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def make_cache_key(variant: str, payload: Dict[str, Any]) -> str:
    """Stable hash of the pipeline variant and its sanitized request fields."""
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)
    digest = hashlib.sha256(f"{variant}|{raw}".encode("utf-8"))
    return digest.hexdigest()


class AnalysisCache:
    """Bounded LRU map whose entries expire after a fixed TTL."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 50,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._lock = Lock()
        self._ttl = float(ttl_seconds)
        self._max_entries = max(int(max_entries), 1)
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Returns a copy of the cached result, or None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            stored_at, data = entry
            if now - stored_at > self._ttl:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return json.loads(json.dumps(data))

    def set(self, key: str, data: Dict[str, Any]) -> None:
        now = self._clock()
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = (now, json.loads(json.dumps(data)))

            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Analysis cache evicted key=%s", evicted[:12])

    def purge_expired(self) -> int:
        """Removes expired entries. Returns number of deleted entries."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (ts, _) in self._entries.items() if now - ts > self._ttl]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Analysis cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
            }
