from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from pageturner.models.chunk import PageChunk
from pageturner.models.document import Document, DocumentCreate
from pageturner.services.chunker import TextChunk


class ChunkStore(Protocol):
    """Keyed access to documents and their chunks.

    ``owner_id`` scopes a lookup to one reader: rows owned by someone else
    are reported exactly like missing rows. Infrastructure failures raise
    ``StoreUnavailableError`` and are never reported as ``None``.
    """

    async def get_chunk(
        self, document_id: str, index: int, owner_id: str | None = None
    ) -> PageChunk | None: ...

    async def get_document_meta(
        self, document_id: str, owner_id: str | None = None
    ) -> Document | None: ...

    async def update_last_read_index(self, document_id: str, index: int) -> bool: ...

    async def insert_document_with_chunks(
        self,
        metadata: DocumentCreate,
        chunks: Sequence[TextChunk],
        documents_limit: int | None = None,
    ) -> str: ...

    async def delete_document(
        self, document_id: str, owner_id: str | None = None
    ) -> bool: ...
