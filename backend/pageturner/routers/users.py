import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from pageturner.config import Settings
from pageturner.db.sqlite import create_user, get_user_by_telegram_id
from pageturner.deps import get_current_user, get_db, get_settings
from pageturner.models.user import User, UserCreate

router = APIRouter()


@router.post("/", response_model=User, status_code=201)
async def register_user(
    body: UserCreate,
    db: aiosqlite.Connection = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
):
    if body.telegram_id is not None:
        existing = await get_user_by_telegram_id(db, body.telegram_id)
        if existing:
            raise HTTPException(409, "User already registered")
    return await create_user(
        db,
        body,
        chunk_size=app_settings.default_chunk_size,
        documents_limit=app_settings.default_documents_limit,
    )


@router.get("/me", response_model=User)
async def whoami(user: User = Depends(get_current_user)):
    return user
