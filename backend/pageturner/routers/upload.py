from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile

from pageturner.config import Settings
from pageturner.db.sqlite import SqliteChunkStore
from pageturner.deps import get_current_user, get_settings, get_store
from pageturner.links import read_link
from pageturner.models.document import UploadResult
from pageturner.models.user import User
from pageturner.services.ingestion import ingest_text

router = APIRouter()

TEXT_MEDIA_TYPE = "text/plain"


@router.post("/upload", response_model=UploadResult, status_code=201)
async def upload_document(
    file: UploadFile,
    author: str = Query(default="noname"),
    user: User = Depends(get_current_user),
    store: SqliteChunkStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
):
    media_type = (file.content_type or "").split(";")[0].strip().lower()
    if media_type != TEXT_MEDIA_TYPE:
        raise HTTPException(
            400,
            f"you need mimetype: {TEXT_MEDIA_TYPE}. your file's mimetype is {file.content_type}",
        )

    content = await file.read(app_settings.max_upload_bytes + 1)
    if len(content) > app_settings.max_upload_bytes:
        raise HTTPException(413, "File is too large")

    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(400, "File must be UTF-8 encoded text") from None

    title = file.filename or "untitled.txt"
    doc_id, chunk_count = await ingest_text(store, user, title, text, author=author)

    return UploadResult(
        document_id=doc_id,
        chunk_count=chunk_count,
        read_url=read_link(app_settings.app_url, doc_id, 0, user.api_key),
    )
