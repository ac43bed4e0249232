"""In-memory TTL cache shielding the backend from repeated document reads."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


@dataclass
class CacheEntry:
    """Cached value with its freshness deadline."""

    value: Any
    stored_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class CacheKeys:
    """Cache key builders."""

    @staticmethod
    def calendar_events(calendar_id: str) -> str:
        return f"calendar_events_{calendar_id}"

    @staticmethod
    def user_info(user_id: str) -> str:
        return f"user_info_{user_id}"

    @staticmethod
    def custom_holidays() -> str:
        return "custom_holidays"


class ReadThroughCache:
    """
    Thread-safe key/value store with a per-entry TTL.

    Expired entries are never returned: ``get`` evicts them on access and a
    background sweeper (``start_sweeper``) drops keys that are never read
    again. Values are replaced wholesale on ``set``.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._sweeper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.logger = logging.getLogger(__name__)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store value under key, overwriting any existing entry."""
        entry = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl
        )
        with self._lock:
            self._entries[key] = entry
        self.logger.debug(f"Cache set: {key} (ttl={entry.ttl}s)")

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                self._expirations += 1
                self.logger.debug(f"Cache entry expired: {key}")
                return None

            self._hits += 1
            return entry.value

    def delete(self, key: str) -> bool:
        """Invalidate key. Returns True if an entry was removed."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            self.logger.debug(f"Cache invalidated: {key}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Evict every expired entry. Returns the number evicted."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)

        if expired:
            self.logger.debug(f"Cache sweep evicted {len(expired)} entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'size': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'expirations': self._expirations,
                'hit_rate': (self._hits / total) if total else 0.0,
                'default_ttl_seconds': self.default_ttl,
                'sweeper_running': self.sweeper_running,
            }

    # Background sweep

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Start the periodic expiry sweep in a daemon thread."""
        if self.sweeper_running:
            return

        self._stop_event.clear()

        def sweep_loop():
            while not self._stop_event.wait(interval):
                try:
                    self.cleanup()
                except Exception as e:
                    self.logger.warning(f"Cache sweep failed: {e}")

        self._sweeper = threading.Thread(target=sweep_loop, name="cache-sweeper", daemon=True)
        self._sweeper.start()
        self.logger.info(f"Cache sweeper started (interval={interval}s)")

    def stop_sweeper(self, timeout: float = 5.0) -> None:
        """Stop the sweep thread and wait for it to exit."""
        if self._sweeper is None:
            return
        self._stop_event.set()
        self._sweeper.join(timeout=timeout)
        self._sweeper = None
        self.logger.info("Cache sweeper stopped")
