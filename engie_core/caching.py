"""
Caching - Analysis result caching

Typing a word and deleting it again brings the document back to a text
that was already scanned. The cache answers such scans locally instead of
paying another round-trip to the analysis service.

Only successful results are stored; failures always go back to the service.

Author: Engie contributors | 2025-06-02
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional

from .analysis.base import AnalysisResult, BaseAnalyzer

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached analysis result."""

    key: str
    result: AnalysisResult
    created_at: float = field(default_factory=time.time)
    accessed_at: float = field(default_factory=time.time)
    access_count: int = 0
    ttl: Optional[float] = None  # Time to live in seconds

    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.ttl is None:
            return False
        return time.time() - self.created_at > self.ttl

    def touch(self):
        """Update access time and count."""
        self.accessed_at = time.time()
        self.access_count += 1


def make_cache_key(analyzer_name: str, mode: str, text: str) -> str:
    """Stable key for (analyzer, mode, text)."""
    h = hashlib.sha256()
    for part in (analyzer_name, mode, text):
        h.update(part.encode("utf-8"))
        h.update(b"\x00")
    return h.hexdigest()


class AnalysisCache:
    """
    In-memory LRU cache with size and TTL limits.

    Thread-safe: analyzers run in worker threads.
    """

    def __init__(self, max_size: int = 256, default_ttl: Optional[float] = 300):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries
            default_ttl: Default time-to-live in seconds (None = no expiry)
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get entry, moving to end (most recently used)."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired():
                del self._cache[key]
                self.misses += 1
                return None

            self._cache.move_to_end(key)
            entry.touch()
            self.hits += 1
            return entry

    def set(self, key: str, result: AnalysisResult, ttl: Optional[float] = None):
        """Store a result, evicting the oldest entries if at capacity."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]

            while len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)

            self._cache[key] = CacheEntry(
                key=key,
                result=result,
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def clear(self):
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        return len(self._cache)

    def stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "size": self.size(),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }


class CachedAnalyzer(BaseAnalyzer):
    """
    Wrap an analyzer with an AnalysisCache.

    Example:
        analyzer = CachedAnalyzer(LocalAnalyzer(), AnalysisCache(max_size=64))
        analyzer.analyze("I recieve emails.")      # computed
        analyzer.analyze("I recieve emails.")      # cached=True
    """

    def __init__(self, inner: BaseAnalyzer, cache: Optional[AnalysisCache] = None):
        self.inner = inner
        self.cache = cache if cache is not None else AnalysisCache()
        self.mode = inner.mode

    @property
    def name(self) -> str:
        return self.inner.name

    def analyze(self, text: str) -> AnalysisResult:
        key = make_cache_key(self.inner.name, self.inner.mode.value, text)
        entry = self.cache.get(key)
        if entry is not None:
            logger.debug(f"Analysis cache hit for {self.inner.name}")
            return entry.result.as_cached()

        result = self.inner.analyze(text)
        self.cache.set(key, result)
        return result

    def is_available(self) -> bool:
        return self.inner.is_available()
