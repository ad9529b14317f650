"""In-memory key/value cache with expiry, background cleanup and hit statistics."""
from __future__ import annotations

import threading
import time
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Union

Duration = Union[float, int, timedelta]

_NS_PER_SECOND = 1_000_000_000


def _to_seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def _decimal(value: int, scale: int) -> str:
    whole, frac = divmod(value, scale)
    if not frac:
        return str(whole)
    width = len(str(scale)) - 1
    return f"{whole}." + f"{frac:0{width}d}".rstrip("0")


def _format_duration(seconds: float) -> str:
    """Render a duration in the compact h/m/s form, e.g. ``10m0s``."""
    total_ns = round(seconds * _NS_PER_SECOND)
    if total_ns == 0:
        return "0s"
    sign = "-" if total_ns < 0 else ""
    ns = abs(total_ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < _NS_PER_SECOND:
        unit, scale = ("µs", 1_000) if ns < 1_000_000 else ("ms", 1_000_000)
        return f"{sign}{_decimal(ns, scale)}{unit}"
    hours, rest = divmod(ns, 3600 * _NS_PER_SECOND)
    minutes, rest = divmod(rest, 60 * _NS_PER_SECOND)
    text = ""
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return f"{sign}{text}{_decimal(rest, _NS_PER_SECOND)}s"


@dataclass
class CacheItem:
    """A cached value with an absolute expiry in nanoseconds (0 means never)."""

    value: Any
    expiration: int = 0

    def expired(self) -> bool:
        if self.expiration == 0:
            return False
        return time.time_ns() > self.expiration


class MemoryCache:
    """Thread-safe in-memory cache.

    Durations are given in seconds or as ``timedelta``. A lookup that finds
    nothing, or finds an expired item, returns ``None`` and counts as a miss.
    """

    def __init__(self, default_expiration: Duration = 0, cleanup_interval: Duration = 0):
        self.default_expiration = _to_seconds(default_expiration)
        self.cleanup_interval = _to_seconds(cleanup_interval)
        self._items: dict[str, CacheItem] = {}
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._stop = threading.Event()
        self._cleaner: Optional[threading.Thread] = None
        if self.cleanup_interval > 0:
            self._cleaner = threading.Thread(
                target=self._run_cleanup, name="cache-cleanup", daemon=True
            )
            self._cleaner.start()

    def _run_cleanup(self) -> None:
        while not self._stop.wait(self.cleanup_interval):
            self.delete_expired()

    def set(self, key: str, value: Any) -> None:
        """Store a value using the default expiration."""
        self.set_with_expiration(key, value, self.default_expiration)

    def set_with_expiration(self, key: str, value: Any, duration: Duration) -> None:
        """Store a value; a zero duration means the default, a negative one never expires."""
        seconds = _to_seconds(duration)
        if seconds == 0:
            seconds = self.default_expiration
        expiration = time.time_ns() + int(seconds * _NS_PER_SECOND) if seconds > 0 else 0
        with self._lock:
            self._items[key] = CacheItem(value, expiration)

    def get(self, key: str) -> Any:
        """Return the cached value, or ``None`` when absent or expired."""
        with self._lock:
            item = self._items.get(key)
        if item is None or item.expired():
            with self._stats_lock:
                self._misses += 1
            return None
        with self._stats_lock:
            self._hits += 1
        return item.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def flush(self) -> None:
        """Remove every item."""
        with self._lock:
            self._items = {}

    def delete_expired(self) -> None:
        """Remove all items whose expiry has passed."""
        now = time.time_ns()
        with self._lock:
            self._items = {
                key: item
                for key, item in self._items.items()
                if not (item.expiration > 0 and now > item.expiration)
            }

    def stop_cleanup(self) -> None:
        """Stop the background cleanup thread, if any."""
        self._stop.set()
        if self._cleaner is not None:
            self._cleaner.join(timeout=1.0)

    def stats(self) -> dict[str, Any]:
        """Return item counts, hit statistics and per-prefix key counts."""
        with self._lock:
            items = dict(self._items)
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total_requests = hits + misses
        hit_rate = hits / total_requests * 100 if total_requests else 0.0
        now = time.time_ns()
        expired = sum(1 for item in items.values() if item.expiration > 0 and now > item.expiration)
        type_stats = dict(Counter(key.split(":")[0] for key in items))
        return {
            "total": len(items),
            "expired": expired,
            "hit_count": hits,
            "miss_count": misses,
            "hit_rate": hit_rate,
            "type_stats": type_stats,
            "memory_size": "未计算",
            "cleanup_interval": _format_duration(self.cleanup_interval),
        }


_cache: Optional[MemoryCache] = None


def init_cache(default_expiration: Duration, cleanup_interval: Duration) -> MemoryCache:
    """Create the shared cache, replacing (and stopping) any previous one."""
    global _cache
    if _cache is not None:
        _cache.stop_cleanup()
    _cache = MemoryCache(default_expiration, cleanup_interval)
    return _cache


def get_cache() -> MemoryCache:
    """Return the shared cache created by :func:`init_cache`."""
    if _cache is None:
        raise RuntimeError("cache has not been initialised")
    return _cache