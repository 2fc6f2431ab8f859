"""
In-memory cache of parsed workbooks, keyed by upload content.
"""
import hashlib
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float  # seconds


class SimpleCache:
    """Thread-safe in-memory cache with per-entry TTL."""

    def __init__(self, default_ttl: float = 1800):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = Lock()
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if time.time() - entry.timestamp > entry.ttl:
                del self._cache[key]
                logger.debug(f"Cache entry expired: {key[:16]}...")
                return None
            logger.debug(f"Cache hit: {key[:16]}...")
            return entry.data

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        with self._lock:
            self._cache[key] = CacheEntry(data=value, timestamp=time.time(), ttl=ttl or self.default_ttl)

    def clear(self):
        with self._lock:
            self._cache.clear()
            logger.info("Cache cleared")

    def cleanup_expired(self) -> int:
        with self._lock:
            now = time.time()
            expired = [k for k, e in self._cache.items() if now - e.timestamp > e.ttl]
            for key in expired:
                del self._cache[key]
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        self.cleanup_expired()
        with self._lock:
            return {'size': len(self._cache), 'default_ttl': self.default_ttl}


_workbook_cache = SimpleCache(default_ttl=1800)


def get_workbook_cache() -> SimpleCache:
    return _workbook_cache


def generate_workbook_cache_key(file_content: bytes, filename: str) -> str:
    """Same bytes under the same name map to the same key."""
    content_hash = hashlib.sha256(file_content).hexdigest()
    filename_hash = hashlib.sha256(filename.encode()).hexdigest()
    return f"workbook:{content_hash}:{filename_hash}"
