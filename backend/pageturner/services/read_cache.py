"""
Time-expiring page cache.

Keys are (document_id, page_index); values are ``PageChunk`` snapshots.
An entry is absent once ``now >= expires_at`` whether or not the sweeper
has reaped it yet. A miss is never an error: callers fall back to the store.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from pageturner.models.chunk import PageChunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    chunk: PageChunk
    expires_at: float


@dataclass(frozen=True)
class Invalidation:
    generation: int
    at: float


class ReadCache:
    def __init__(
        self,
        default_ttl: float = 300.0,
        invalidation_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self.invalidation_ttl = invalidation_ttl
        self._clock = clock
        # document_id -> page_index -> entry, so a document drops in one pop
        self._entries: dict[str, dict[int, CacheEntry]] = {}
        # bumped by invalidate() so a store read that started earlier cannot
        # repopulate a deleted document; forgotten after invalidation_ttl
        self._invalidations: dict[str, Invalidation] = {}

    def get(self, document_id: str, page_index: int) -> PageChunk | None:
        pages = self._entries.get(document_id)
        if not pages:
            return None
        entry = pages.get(page_index)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._drop(document_id, page_index)
            return None
        return entry.chunk

    def set(
        self,
        document_id: str,
        page_index: int,
        chunk: PageChunk,
        ttl: float | None = None,
        generation: int | None = None,
    ) -> None:
        """Store (or overwrite) a page. ``ttl=None`` uses the cache default.

        When ``generation`` is given and the document has been invalidated
        since it was read, the write is dropped.
        """
        if generation is not None and generation != self.generation(document_id):
            return
        ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(chunk=chunk, expires_at=self._clock() + ttl)
        self._entries.setdefault(document_id, {})[page_index] = entry

    def generation(self, document_id: str) -> int:
        record = self._invalidations.get(document_id)
        return record.generation if record else 0

    def invalidate(self, document_id: str) -> int:
        self._invalidations[document_id] = Invalidation(
            generation=self.generation(document_id) + 1, at=self._clock()
        )
        pages = self._entries.pop(document_id, None)
        return len(pages) if pages else 0

    def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        for document_id in list(self._entries):
            pages = self._entries.get(document_id)
            if pages is None:
                continue
            for page_index, entry in list(pages.items()):
                if now >= entry.expires_at:
                    del pages[page_index]
                    removed += 1
            if not pages:
                self._entries.pop(document_id, None)
        for document_id, record in list(self._invalidations.items()):
            if now - record.at >= self.invalidation_ttl:
                del self._invalidations[document_id]
        return removed

    async def run_sweeper(self, interval: float) -> None:
        """Reap expired entries every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Read cache sweep removed %d expired pages", removed)

    def clear(self) -> None:
        self._entries.clear()
        self._invalidations.clear()

    def __len__(self) -> int:
        return sum(len(pages) for pages in self._entries.values())

    def _drop(self, document_id: str, page_index: int) -> None:
        pages = self._entries[document_id]
        del pages[page_index]
        if not pages:
            del self._entries[document_id]
