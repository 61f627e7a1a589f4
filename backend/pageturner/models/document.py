from pydantic import BaseModel


class DocumentCreate(BaseModel):
    title: str
    author: str = ""
    owner_id: str


class Document(BaseModel):
    id: str
    title: str
    author: str
    chunk_count: int
    last_read_index: int
    owner_id: str
    created_at: str
    updated_at: str


class DocumentSummary(BaseModel):
    """A library entry: document metadata plus reading progress and links."""

    id: str
    position: int | None = None  # 1-based place in the listing
    title: str
    author: str
    file_name: str
    current_page: int
    total_pages: int
    percent: str
    begin_link: str
    continue_link: str


class DocumentList(BaseModel):
    user_name: str
    items: list[DocumentSummary]
    total: int
    page: int
    take: int
    page_links: list[str]
    labels: dict[str, str]


class UploadResult(BaseModel):
    document_id: str
    chunk_count: int
    read_url: str
