"""Pytest configuration and fixtures."""
from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from pageturner import create_app
from pageturner.config import Settings
from pageturner.db.sqlite import SqliteChunkStore, create_user
from pageturner.models.document import DocumentCreate
from pageturner.models.user import User, UserCreate
from pageturner.services.chunker import split_text
from pageturner.services.pagination import PaginationService
from pageturner.services.read_cache import ReadCache
from pageturner.services.task_registry import TaskRegistry


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedStore:
    """Wraps a real store and lets a test interfere with selected calls."""

    def __init__(self, inner: SqliteChunkStore) -> None:
        self.inner = inner
        self.get_chunk_calls: list[tuple[str, int]] = []
        self.chunk_errors: dict[int, Exception] = {}
        self.chunk_delays: dict[int, float] = {}
        self.chunk_gates: dict[int, asyncio.Event] = {}
        self.update_error: Exception | None = None

    async def get_chunk(self, document_id, index, owner_id=None):
        self.get_chunk_calls.append((document_id, index))
        if index in self.chunk_errors:
            raise self.chunk_errors[index]
        if index in self.chunk_delays:
            await asyncio.sleep(self.chunk_delays[index])
        chunk = await self.inner.get_chunk(document_id, index, owner_id)
        if index in self.chunk_gates:
            await self.chunk_gates[index].wait()
        return chunk

    async def update_last_read_index(self, document_id, index):
        if self.update_error is not None:
            raise self.update_error
        return await self.inner.update_last_read_index(document_id, index)

    def __getattr__(self, name):
        return getattr(self.inner, name)


@pytest.fixture
async def store(tmp_path) -> SqliteChunkStore:
    s = SqliteChunkStore(tmp_path / "pageturner.db")
    await s.init()
    return s


async def _make_user(store: SqliteChunkStore, username: str, chunk_size: int = 3) -> User:
    async with store.connection() as db:
        return await create_user(
            db,
            UserCreate(username=username, chunk_size=chunk_size),
            chunk_size=chunk_size,
            documents_limit=3,
        )


@pytest.fixture
async def owner(store) -> User:
    return await _make_user(store, "reader")


@pytest.fixture
async def stranger(store) -> User:
    return await _make_user(store, "stranger")


@pytest.fixture
async def document_id(store, owner) -> str:
    """The ten-letter sample text stored with three characters per page."""
    return await store.insert_document_with_chunks(
        DocumentCreate(title="letters.txt", author="Anon", owner_id=owner.id),
        split_text("ABCDEFGHIJ", 3),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ReadCache:
    return ReadCache(default_ttl=300.0, clock=clock)


@pytest.fixture
async def tasks():
    registry = TaskRegistry()
    yield registry
    await registry.drain(timeout=1.0)


@pytest.fixture
def scripted(store) -> ScriptedStore:
    return ScriptedStore(store)


@pytest.fixture
def service(scripted, cache, tasks) -> PaginationService:
    return PaginationService(scripted, cache, tasks, page_ttl=3600.0, prefetch_timeout=1.0)


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        app_url="http://reader.test",
        default_chunk_size=3,
        default_documents_limit=2,
        max_upload_bytes=64,
    )


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as c:
        yield c


@pytest.fixture
def api_user(client) -> dict:
    res = client.post("/users/", json={"username": "reader", "language_code": "ru"})
    assert res.status_code == 201
    return res.json()
