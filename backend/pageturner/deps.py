from typing import AsyncIterator

import aiosqlite
from fastapi import Depends, HTTPException, Query, Request

from pageturner.config import Settings
from pageturner.db.sqlite import SqliteChunkStore, get_user_by_api_key
from pageturner.models.user import User
from pageturner.services.pagination import PaginationService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SqliteChunkStore:
    return request.app.state.store


def get_pagination(request: Request) -> PaginationService:
    return request.app.state.pagination


async def get_db(
    store: SqliteChunkStore = Depends(get_store),
) -> AsyncIterator[aiosqlite.Connection]:
    async with store.connection() as db:
        yield db


async def get_current_user(
    k: str | None = Query(default=None, description="API key"),
    db: aiosqlite.Connection = Depends(get_db),
) -> User:
    if not k:
        raise HTTPException(401, 'query param "k" is required! use ?k=<key>')
    user = await get_user_by_api_key(db, k)
    if user is None:
        raise HTTPException(401, "we do not recognize you!")
    return user
