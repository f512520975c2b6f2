"""Caching primitives for nuresolve.

Two layers of caching keep registry traffic low:

* :class:`AsyncMemo`: an instance-scoped memo with an atomic, per-key
  *get-or-populate* operation.  The registry client and the framework
  resolver keep one memo per key space (catalogs, manifests, specs,
  nearest frameworks).  Concurrent coroutines asking for the same key
  share a single computation.
* :class:`ResponseCache`: a URL to body cache used by
  :class:`~nuresolve.utils.http.HTTPClient`.  Entries stay fresh for a
  fixed maximum age no matter what ``Cache-Control`` headers the registry
  sends; published package metadata does not change.

Typical usage::

    memo: AsyncMemo[str, PackageCatalog] = AsyncMemo("catalog")
    catalog = await memo.get_or_populate(name.lower(), lambda: fetch(name))
"""

from __future__ import annotations

import time
import asyncio
import hashlib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

from nuresolve.utils.logger import get_logger

logger = get_logger("cache")

# Public API
__all__ = ["AsyncMemo", "CachedResponse", "ResponseCache"]

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


# ---------------------------------------------------------------------------
# Per-key memoization
# ---------------------------------------------------------------------------


class AsyncMemo(Generic[K, V]):
    """Async-safe memo with double-checked, per-key locking.

    Successful results are kept for the lifetime of the memo.  A factory
    that raises leaves no entry behind, so a later call retries.  ``None``
    is a legitimate cached value.

    Args:
        name: Label used in debug logs.

    Example::

        >>> memo = AsyncMemo("details")
        >>> await memo.get_or_populate("a:1.0", fetch_details)
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._values: Dict[K, V] = {}
        self._locks: Dict[K, asyncio.Lock] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    async def get_or_populate(
        self,
        key: K,
        factory: Callable[[], Awaitable[V]],
    ) -> V:
        """Return the value for *key*, computing it at most once.

        Args:
            key: Cache key.
            factory: Zero-argument coroutine function producing the value.

        Returns:
            The cached or freshly computed value.
        """
        # Fast path, no lock needed
        if key in self._values:
            logger.debug("%s cache hit: %s", self.name, key)
            return self._values[key]

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another coroutine may have populated it while we waited
            if key in self._values:
                return self._values[key]

            value = await factory()
            self._values[key] = value
            return value


# ---------------------------------------------------------------------------
# HTTP response cache
# ---------------------------------------------------------------------------


@dataclass
class CachedResponse:
    """A response body together with the time it was stored."""

    body: str
    stored_at: float = field(default_factory=time.time)

    def is_fresh(self, max_age: float, now: Optional[float] = None) -> bool:
        """Return True if the entry is younger than *max_age* seconds."""
        current = time.time() if now is None else now
        return current - self.stored_at <= max_age


class ResponseCache:
    """URL-keyed response body cache with a fixed freshness window.

    Entries live in memory and, when *cache_dir* is given, are mirrored to
    disk so that later processes can reuse them.  The file modification
    time serves as the storage timestamp.

    Args:
        max_age: Freshness window in seconds.
        cache_dir: Optional directory for persistent entries.
    """

    def __init__(self, max_age: float, cache_dir: Optional[Path] = None) -> None:
        self.max_age = max_age
        self.cache_dir = cache_dir
        self._entries: Dict[str, CachedResponse] = {}

        if cache_dir is not None:
            cache_dir.mkdir(parents=True, exist_ok=True)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, url: str) -> Optional[str]:
        """Return a fresh cached body for *url*, or ``None``."""
        entry = self._entries.get(url)
        if entry is None:
            entry = self._load(url)

        if entry is None:
            return None

        if not entry.is_fresh(self.max_age):
            logger.debug("Cached response for %s is stale", url)
            self._entries.pop(url, None)
            return None

        self._entries[url] = entry
        return entry.body

    def put(self, url: str, body: str) -> None:
        """Store *body* as the response for *url*."""
        entry = CachedResponse(body)
        self._entries[url] = entry

        path = self._path_for(url)
        if path is not None:
            try:
                path.write_text(body, encoding="utf-8")
            except OSError as exc:
                logger.debug("Cannot persist cached response for %s: %s", url, exc)

    def _path_for(self, url: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.cache_dir / digest

    def _load(self, url: str) -> Optional[CachedResponse]:
        path = self._path_for(url)
        if path is None or not path.is_file():
            return None
        try:
            return CachedResponse(
                body=path.read_text(encoding="utf-8"),
                stored_at=path.stat().st_mtime,
            )
        except OSError as exc:
            logger.debug("Cannot read cached response for %s: %s", url, exc)
            return None
