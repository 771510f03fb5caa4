"""Bounded LRU registry of decoded BAM readers with idle-time expiry."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict

from ..constants import DEFAULT_CACHED_FILE_TTL_SECONDS, DEFAULT_MAX_CACHED_FILES
from .reader import NonIndexedBamReader

logger = logging.getLogger(__name__)


class ReaderRegistry:
    """Keeps at most ``maxsize`` readers, evicting the least recently used.

    A reader unused for longer than ``ttl`` seconds is dropped on its next
    lookup. Evicting a reader only releases the registry's reference; a query
    already holding it finishes normally. All methods run without awaiting, so
    they are atomic with respect to other tasks on the event loop.
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_MAX_CACHED_FILES,
        ttl: float = DEFAULT_CACHED_FILE_TTL_SECONDS,
    ):
        self._readers: OrderedDict[str, tuple[NonIndexedBamReader, float]] = OrderedDict()
        self._maxsize = maxsize
        self._ttl = ttl

    def get(self, key: str) -> NonIndexedBamReader | None:
        """Return the reader for ``key``, or None if missing or expired."""
        if key not in self._readers:
            return None

        reader, last_used = self._readers[key]
        now = time.monotonic()
        if now - last_used > self._ttl:
            del self._readers[key]
            logger.info("Expired decoded BAM after %.0fs idle: %s", now - last_used, key)
            return None

        self._readers[key] = (reader, now)
        self._readers.move_to_end(key)
        return reader

    def set(self, key: str, reader: NonIndexedBamReader) -> None:
        """Store ``reader`` under ``key``, evicting the oldest if at capacity."""
        if key in self._readers:
            del self._readers[key]
        elif len(self._readers) >= self._maxsize:
            evicted, _ = self._readers.popitem(last=False)
            logger.info("Evicted decoded BAM (registry full at %d): %s", self._maxsize, evicted)

        self._readers[key] = (reader, time.monotonic())

    def pop(self, key: str) -> NonIndexedBamReader | None:
        entry = self._readers.pop(key, None)
        return entry[0] if entry else None

    def clear(self) -> int:
        """Drop every reader. Returns how many were dropped."""
        count = len(self._readers)
        self._readers.clear()
        return count

    def __len__(self) -> int:
        return len(self._readers)

    def __contains__(self, key: object) -> bool:
        return key in self._readers
