from pageturner.models.chunk import Chunk, PageChunk, SearchHit, SearchResult
from pageturner.models.document import (
    Document,
    DocumentCreate,
    DocumentList,
    DocumentSummary,
    UploadResult,
)
from pageturner.models.page import PageView, ReaderPage
from pageturner.models.user import User, UserCreate

__all__ = [
    "Chunk",
    "Document",
    "DocumentCreate",
    "DocumentList",
    "DocumentSummary",
    "PageChunk",
    "PageView",
    "ReaderPage",
    "SearchHit",
    "SearchResult",
    "UploadResult",
    "User",
    "UserCreate",
]
