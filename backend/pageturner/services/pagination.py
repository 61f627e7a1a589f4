"""
Page reads with read-ahead and progress tracking.

get_page(doc, P):
  1. cache (owner must match) → store fallback, cached with ``page_ttl``
  2. reading marker moved to P (awaited, failures logged only)
  3. page P+1 warmed by a detached task using the cache's default TTL
"""
from __future__ import annotations

import asyncio
import logging

from pageturner.db.store import ChunkStore
from pageturner.errors import StoreUnavailableError
from pageturner.models.chunk import PageChunk
from pageturner.models.page import PageView
from pageturner.models.user import User
from pageturner.services.read_cache import ReadCache
from pageturner.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)

PAGE_TTL = 3600.0
PREFETCH_TIMEOUT = 5.0


class PaginationService:
    def __init__(
        self,
        store: ChunkStore,
        cache: ReadCache,
        tasks: TaskRegistry,
        page_ttl: float = PAGE_TTL,
        prefetch_timeout: float = PREFETCH_TIMEOUT,
    ) -> None:
        self.store = store
        self.cache = cache
        self.tasks = tasks
        self.page_ttl = page_ttl
        self.prefetch_timeout = prefetch_timeout

    async def get_page(
        self,
        document_id: str,
        page_index: int,
        caller: User,
        persist_progress: bool = True,
    ) -> PageView | None:
        """Return page ``page_index`` of a document owned by ``caller``.

        Returns None when the document is not visible to the caller or the
        index is outside ``[0, chunk_count - 1]``. ``StoreUnavailableError``
        from the primary read propagates.
        """
        if page_index < 0:
            return None

        stored_marker: int | None = None
        chunk = self._cached(document_id, page_index, caller.id)
        if chunk is None:
            generation = self.cache.generation(document_id)
            fresh = await self.store.get_chunk(document_id, page_index, owner_id=caller.id)
            if fresh is None:
                return None
            stored_marker = fresh.last_read_index
            chunk = _snapshot(fresh)
            self.cache.set(
                document_id, page_index, chunk, ttl=self.page_ttl, generation=generation
            )

        # a cache hit does not know the current marker; the store skips no-op writes
        if persist_progress and page_index != stored_marker:
            await self._save_progress(document_id, page_index)

        if page_index + 1 < chunk.chunk_count:
            self._schedule_read_ahead(document_id, page_index + 1, caller.id)

        return PageView(
            document_id=chunk.document_id,
            title=chunk.title,
            author=chunk.author,
            text=chunk.content,
            current_page=page_index,
            total_pages=chunk.chunk_count,
            language_code=chunk.language_code,
        )

    async def delete_document(self, document_id: str, caller: User) -> bool:
        """Delete a document with its chunks and drop every cached page of it."""
        deleted = await self.store.delete_document(document_id, owner_id=caller.id)
        if deleted:
            dropped = self.cache.invalidate(document_id)
            logger.info(
                "Deleted document %s (%d cached pages dropped)", document_id, dropped
            )
        return deleted

    def _cached(self, document_id: str, page_index: int, owner_id: str) -> PageChunk | None:
        chunk = self.cache.get(document_id, page_index)
        if chunk is None or chunk.owner_id != owner_id:
            return None
        return chunk

    async def _save_progress(self, document_id: str, page_index: int) -> None:
        try:
            found = await self.store.update_last_read_index(document_id, page_index)
        except StoreUnavailableError:
            logger.warning(
                "Could not save reading progress for %s (page %d)",
                document_id,
                page_index,
                exc_info=True,
            )
            return
        if not found:
            logger.info("Document %s vanished before progress was saved", document_id)

    def _schedule_read_ahead(self, document_id: str, page_index: int, owner_id: str) -> None:
        if self.cache.get(document_id, page_index) is not None:
            return
        self.tasks.start_task(
            f"read-ahead:{document_id}:{page_index}",
            self._read_ahead(document_id, page_index, owner_id),
        )

    async def _read_ahead(self, document_id: str, page_index: int, owner_id: str) -> None:
        generation = self.cache.generation(document_id)
        try:
            chunk = await asyncio.wait_for(
                self.store.get_chunk(document_id, page_index, owner_id=owner_id),
                timeout=self.prefetch_timeout,
            )
        except Exception:
            logger.warning(
                "Read-ahead of %s page %d failed", document_id, page_index, exc_info=True
            )
            return
        if chunk is not None:
            self.cache.set(document_id, page_index, _snapshot(chunk), generation=generation)


def _snapshot(chunk: PageChunk) -> PageChunk:
    # the reading marker changes after ingestion; cached pages must not carry it
    return chunk.model_copy(update={"last_read_index": None})
