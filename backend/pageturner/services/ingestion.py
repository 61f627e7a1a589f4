from __future__ import annotations

import logging

from pageturner.db.store import ChunkStore
from pageturner.models.document import DocumentCreate
from pageturner.models.user import User
from pageturner.services.chunker import split_text

logger = logging.getLogger(__name__)


async def ingest_text(
    store: ChunkStore,
    owner: User,
    title: str,
    text: str,
    author: str = "",
) -> tuple[str, int]:
    """Split ``text`` into the owner's page size and store it as one document.

    Returns ``(document_id, chunk_count)``. Raises ``DocumentLimitExceededError``
    when the owner is at quota and ``IngestFailedError`` if the write fails;
    in both cases nothing becomes visible to readers.
    """
    # split first so a bad chunk size is rejected before any I/O
    chunks = split_text(text, owner.chunk_size)

    doc_id = await store.insert_document_with_chunks(
        DocumentCreate(title=title, author=author, owner_id=owner.id),
        chunks,
        documents_limit=owner.documents_limit,
    )
    logger.info(
        "Document %s ingested for %s: %d chars, %d pages",
        doc_id,
        owner.id,
        len(text),
        len(chunks),
    )
    return doc_id, len(chunks)
