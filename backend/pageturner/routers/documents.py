import re

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from pageturner.config import Settings
from pageturner.db.sqlite import (
    get_document,
    list_chunks_for_document,
    list_documents,
    search_chunks,
)
from pageturner.deps import get_current_user, get_db, get_pagination, get_settings
from pageturner.i18n import get_text
from pageturner.links import page_links, read_link
from pageturner.models.chunk import Chunk, SearchHit, SearchResult
from pageturner.models.document import Document, DocumentList, DocumentSummary
from pageturner.models.user import User
from pageturner.services.pagination import PaginationService

router = APIRouter()

_TXT_SUFFIX = re.compile(r"\.txt$", re.IGNORECASE)
# keeps (page - 1) * take well inside SQLite's OFFSET range
MAX_LIST_PAGE = 100_000


def _summary(
    doc: Document, user: User, app_url: str, position: int | None = None
) -> DocumentSummary:
    return DocumentSummary(
        id=doc.id,
        position=position,
        title=_TXT_SUFFIX.sub("", doc.title),
        author=doc.author,
        file_name=doc.title,
        current_page=doc.last_read_index,
        total_pages=doc.chunk_count,
        percent=f"{round(100 * (doc.last_read_index + 1) / doc.chunk_count)} %",
        begin_link=read_link(app_url, doc.id, 0, user.api_key),
        continue_link=read_link(app_url, doc.id, doc.last_read_index, user.api_key),
    )


@router.get("/", response_model=DocumentList)
async def list_docs(
    page: int = Query(default=1, ge=1, le=MAX_LIST_PAGE),
    take: int = Query(default=5, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: aiosqlite.Connection = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    skip = (page - 1) * take
    docs, total = await list_documents(db, user.id, skip, take)
    return DocumentList(
        user_name=user.display_name,
        items=[
            _summary(doc, user, app_settings.app_url, position=skip + i + 1)
            for i, doc in enumerate(docs)
        ],
        total=total,
        page=page,
        take=take,
        page_links=page_links(total, take, app_settings.app_url, user.api_key),
        labels={
            key: get_text(user.language_code, key)
            for key in ("books_open_begin", "books_continue", "books_pages")
        },
    )


@router.get("/{doc_id}", response_model=DocumentSummary)
async def get_doc(
    doc_id: str,
    user: User = Depends(get_current_user),
    db: aiosqlite.Connection = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    doc = await get_document(db, doc_id, owner_id=user.id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return _summary(doc, user, app_settings.app_url)


@router.delete("/{doc_id}", status_code=204)
async def delete_doc(
    doc_id: str,
    user: User = Depends(get_current_user),
    pagination: PaginationService = Depends(get_pagination),
):
    deleted = await pagination.delete_document(doc_id, user)
    if not deleted:
        raise HTTPException(status_code=404, detail="Document not found")


@router.get("/{doc_id}/chunks", response_model=list[Chunk])
async def list_chunks(
    doc_id: str,
    user: User = Depends(get_current_user),
    db: aiosqlite.Connection = Depends(get_db),
):
    doc = await get_document(db, doc_id, owner_id=user.id)
    if not doc:
        raise HTTPException(404, "Document not found")
    return await list_chunks_for_document(db, doc_id)


@router.get("/{doc_id}/search", response_model=SearchResult)
async def search_doc(
    doc_id: str,
    q: str = Query(min_length=1),
    page: int = Query(default=1, ge=1, le=MAX_LIST_PAGE),
    take: int = Query(default=5, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: aiosqlite.Connection = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    doc = await get_document(db, doc_id, owner_id=user.id)
    if not doc:
        raise HTTPException(404, "Document not found")

    chunks, total = await search_chunks(
        db, doc_id, user.id, q, offset=(page - 1) * take, limit=take
    )
    return SearchResult(
        items=[
            SearchHit(
                chunk_index=c.chunk_index,
                content=c.content,
                # opening a hit must not move the reading marker
                preview_link=read_link(
                    app_settings.app_url, doc_id, c.chunk_index, user.api_key, preview="true"
                ),
            )
            for c in chunks
        ],
        total=total,
        page=page,
        take=take,
    )
