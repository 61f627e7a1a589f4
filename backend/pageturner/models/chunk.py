from pydantic import BaseModel


class Chunk(BaseModel):
    document_id: str
    chunk_index: int
    content: str


class PageChunk(BaseModel):
    """A chunk joined with the document and owner fields a page needs.

    This is the value held by the read cache. ``last_read_index`` is only
    filled on a fresh store read and is stripped before caching.
    """

    document_id: str
    chunk_index: int
    content: str
    title: str
    author: str
    chunk_count: int
    owner_id: str
    language_code: str
    last_read_index: int | None = None


class SearchHit(BaseModel):
    chunk_index: int
    content: str
    preview_link: str


class SearchResult(BaseModel):
    items: list[SearchHit]
    total: int
    page: int
    take: int
