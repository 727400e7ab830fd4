"""In-memory TTL cache for collaborator responses (place details, search results)."""
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


def _normalize(part: Any) -> Hashable:
    if isinstance(part, str):
        return ' '.join(part.split()).lower()
    if isinstance(part, float):
        return round(part, 6)
    if isinstance(part, dict):
        return tuple(sorted((k, _normalize(v)) for k, v in part.items()))
    if isinstance(part, (list, tuple)):
        return tuple(_normalize(p) for p in part)
    return part


def make_cache_key(*parts: Any) -> Tuple:
    """Exact key over normalized inputs: whitespace/case-folded strings, rounded floats."""
    return tuple(_normalize(p) for p in parts)


class TTLCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
