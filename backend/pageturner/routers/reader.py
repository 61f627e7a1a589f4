from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from pageturner.config import Settings
from pageturner.deps import get_current_user, get_pagination, get_settings
from pageturner.i18n import get_text
from pageturner.links import library_link, read_link
from pageturner.models.page import ReaderPage
from pageturner.models.user import User
from pageturner.services.pagination import PaginationService

router = APIRouter()


@router.get("/{doc_id}/{page}", response_model=ReaderPage)
async def read_page(
    doc_id: str,
    page: int = Path(ge=0),
    preview: bool = Query(default=False),
    user: User = Depends(get_current_user),
    pagination: PaginationService = Depends(get_pagination),
    app_settings: Settings = Depends(get_settings),
):
    view = await pagination.get_page(
        doc_id, page, user, persist_progress=not preview
    )
    main = library_link(app_settings.app_url, user.api_key)

    if view is None:
        return JSONResponse(
            status_code=404,
            content={
                "main": main,
                "title": get_text(user.language_code, "page_not_found_title"),
                "text": get_text(user.language_code, "page_not_found"),
            },
        )

    next_link = None
    if page + 1 < view.total_pages:
        next_link = read_link(app_settings.app_url, doc_id, page + 1, user.api_key)

    return ReaderPage(
        **view.model_dump(),
        main=main,
        back=read_link(app_settings.app_url, doc_id, max(page - 1, 0), user.api_key),
        next=next_link,
    )
