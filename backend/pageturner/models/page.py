from pydantic import BaseModel


class PageView(BaseModel):
    document_id: str
    title: str
    author: str
    text: str
    current_page: int
    total_pages: int
    language_code: str


class ReaderPage(PageView):
    main: str
    back: str
    next: str | None = None
