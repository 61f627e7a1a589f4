import secrets
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from pageturner.errors import (
    DocumentLimitExceededError,
    IngestFailedError,
    InvalidArgumentError,
    StoreUnavailableError,
    UserAlreadyExistsError,
)
from pageturner.models.chunk import Chunk, PageChunk
from pageturner.models.document import Document, DocumentCreate
from pageturner.models.user import User, UserCreate
from pageturner.services.chunker import TextChunk

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    api_key         TEXT NOT NULL UNIQUE,
    username        TEXT NOT NULL,
    first_name      TEXT DEFAULT '',
    last_name       TEXT DEFAULT '',
    telegram_id     INTEGER UNIQUE,
    language_code   TEXT NOT NULL DEFAULT 'en',
    chunk_size      INTEGER NOT NULL CHECK (chunk_size > 0),
    documents_limit INTEGER NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS documents (
    id              TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    author          TEXT DEFAULT '',
    chunk_count     INTEGER NOT NULL CHECK (chunk_count >= 1),
    last_read_index INTEGER NOT NULL DEFAULT 0,
    owner_id        TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at      TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at      TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id, updated_at);

CREATE TABLE IF NOT EXISTS chunks (
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    content     TEXT NOT NULL,
    PRIMARY KEY (document_id, chunk_index)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""

_PAGE_CHUNK_SELECT = """
SELECT c.document_id, c.chunk_index, c.content,
       d.title, d.author, d.chunk_count, d.last_read_index, d.owner_id,
       u.language_code
FROM chunks c
JOIN documents d ON d.id = c.document_id
JOIN users u ON u.id = d.owner_id
"""


async def init_sqlite(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# SQLite INTEGER is a signed 64-bit value; larger Python ints cannot be bound
MAX_SQLITE_INT = 2**63 - 1


def _fits_integer(value: int) -> bool:
    return -MAX_SQLITE_INT - 1 <= value <= MAX_SQLITE_INT


def _owner_clause(owner_id: str | None, column: str = "d.owner_id") -> tuple[str, tuple]:
    if owner_id is None:
        return "", ()
    return f" AND {column} = ?", (owner_id,)


# --- Users ---


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(**dict(row))


async def create_user(
    db: aiosqlite.Connection,
    user: UserCreate,
    *,
    chunk_size: int,
    documents_limit: int,
) -> User:
    user_id = str(uuid.uuid4())
    try:
        await db.execute(
            """INSERT INTO users
               (id, api_key, username, first_name, last_name, telegram_id,
                language_code, chunk_size, documents_limit, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_id,
                secrets.token_urlsafe(15),
                user.username,
                user.first_name,
                user.last_name,
                user.telegram_id,
                user.language_code,
                user.chunk_size or chunk_size,
                documents_limit,
                _now(),
            ),
        )
        await db.commit()
    except aiosqlite.IntegrityError as exc:
        await db.rollback()
        raise UserAlreadyExistsError(
            f"telegram id {user.telegram_id} is already registered"
        ) from exc
    return await get_user(db, user_id)  # type: ignore[return-value]


async def get_user(db: aiosqlite.Connection, user_id: str) -> User | None:
    cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
    row = await cursor.fetchone()
    return _row_to_user(row) if row else None


async def get_user_by_api_key(db: aiosqlite.Connection, api_key: str) -> User | None:
    cursor = await db.execute("SELECT * FROM users WHERE api_key = ?", (api_key,))
    row = await cursor.fetchone()
    return _row_to_user(row) if row else None


async def get_user_by_telegram_id(
    db: aiosqlite.Connection, telegram_id: int
) -> User | None:
    cursor = await db.execute(
        "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
    )
    row = await cursor.fetchone()
    return _row_to_user(row) if row else None


# --- Documents ---


def _row_to_document(row: aiosqlite.Row) -> Document:
    return Document(**dict(row))


async def count_documents_for_owner(db: aiosqlite.Connection, owner_id: str) -> int:
    cursor = await db.execute(
        "SELECT COUNT(*) FROM documents WHERE owner_id = ?", (owner_id,)
    )
    return (await cursor.fetchone())[0]


async def insert_document_with_chunks(
    db: aiosqlite.Connection,
    metadata: DocumentCreate,
    chunks: Sequence[TextChunk],
    documents_limit: int | None = None,
) -> str:
    """Insert a document row and all of its chunks in a single transaction.

    Either both are committed or neither is; readers never see a document
    whose chunks are still being written. With ``documents_limit`` the
    owner's document count is checked inside the same transaction, so
    concurrent uploads cannot overshoot the quota.
    """
    if not chunks:
        raise InvalidArgumentError("a document needs at least one chunk")

    doc_id = str(uuid.uuid4())
    now = _now()
    try:
        # write lock up front: the quota count and the insert see the same rows
        await db.execute("BEGIN IMMEDIATE")
        if documents_limit is not None:
            owned = await count_documents_for_owner(db, metadata.owner_id)
            if owned >= documents_limit:
                await db.rollback()
                raise DocumentLimitExceededError(
                    f"user {metadata.owner_id} already has {owned} of {documents_limit} documents"
                )
        await db.execute(
            """INSERT INTO documents
               (id, title, author, chunk_count, last_read_index, owner_id,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, 0, ?, ?, ?)""",
            (
                doc_id,
                metadata.title,
                metadata.author,
                len(chunks),
                metadata.owner_id,
                now,
                now,
            ),
        )
        await db.executemany(
            "INSERT INTO chunks (document_id, chunk_index, content) VALUES (?, ?, ?)",
            [(doc_id, c.chunk_index, c.content) for c in chunks],
        )
        await db.commit()
    except aiosqlite.Error as exc:
        await db.rollback()
        raise IngestFailedError(f"could not store document {metadata.title!r}") from exc
    return doc_id


async def get_document(
    db: aiosqlite.Connection, doc_id: str, owner_id: str | None = None
) -> Document | None:
    clause, params = _owner_clause(owner_id, "owner_id")
    cursor = await db.execute(
        f"SELECT * FROM documents WHERE id = ?{clause}",  # noqa: S608
        (doc_id, *params),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_document(row)


async def list_documents(
    db: aiosqlite.Connection, owner_id: str, offset: int = 0, limit: int = 5
) -> tuple[list[Document], int]:
    total = await count_documents_for_owner(db, owner_id)

    cursor = await db.execute(
        """SELECT * FROM documents WHERE owner_id = ?
           ORDER BY updated_at DESC, created_at DESC LIMIT ? OFFSET ?""",
        (owner_id, limit, offset),
    )
    rows = await cursor.fetchall()
    return [_row_to_document(r) for r in rows], total


async def update_last_read_index(
    db: aiosqlite.Connection, doc_id: str, index: int
) -> bool:
    """Move the reading marker. Returns False if the document or index does not exist.

    The row is only written when the stored marker differs.
    """
    if not _fits_integer(index):
        return False
    cursor = await db.execute(
        """UPDATE documents SET last_read_index = ?, updated_at = ?
           WHERE id = ? AND ? >= 0 AND ? < chunk_count AND last_read_index != ?""",
        (index, _now(), doc_id, index, index, index),
    )
    await db.commit()
    if cursor.rowcount > 0:
        return True

    cursor = await db.execute(
        "SELECT 1 FROM documents WHERE id = ? AND ? >= 0 AND ? < chunk_count",
        (doc_id, index, index),
    )
    return await cursor.fetchone() is not None


async def delete_document(
    db: aiosqlite.Connection, doc_id: str, owner_id: str | None = None
) -> bool:
    clause, params = _owner_clause(owner_id, "owner_id")
    cursor = await db.execute(
        f"DELETE FROM documents WHERE id = ?{clause}",  # noqa: S608
        (doc_id, *params),
    )
    await db.commit()
    return cursor.rowcount > 0


# --- Chunks ---


def _row_to_page_chunk(row: aiosqlite.Row) -> PageChunk:
    return PageChunk(**dict(row))


async def get_chunk(
    db: aiosqlite.Connection,
    doc_id: str,
    index: int,
    owner_id: str | None = None,
) -> PageChunk | None:
    if not _fits_integer(index):
        return None
    clause, params = _owner_clause(owner_id)
    cursor = await db.execute(
        f"{_PAGE_CHUNK_SELECT} WHERE c.document_id = ? AND c.chunk_index = ?{clause}",  # noqa: S608
        (doc_id, index, *params),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_page_chunk(row)


async def list_chunks_for_document(
    db: aiosqlite.Connection, doc_id: str
) -> list[Chunk]:
    cursor = await db.execute(
        "SELECT * FROM chunks WHERE document_id = ? ORDER BY chunk_index", (doc_id,)
    )
    rows = await cursor.fetchall()
    return [Chunk(**dict(r)) for r in rows]


async def search_chunks(
    db: aiosqlite.Connection,
    doc_id: str,
    owner_id: str,
    text: str,
    offset: int = 0,
    limit: int = 5,
) -> tuple[list[Chunk], int]:
    """Case-insensitive substring match over one document's chunks, in page order."""
    where = """FROM chunks c JOIN documents d ON d.id = c.document_id
               WHERE c.document_id = ? AND d.owner_id = ?
               AND instr(lower(c.content), lower(?)) > 0"""
    params = (doc_id, owner_id, text)

    cursor = await db.execute(f"SELECT COUNT(*) {where}", params)  # noqa: S608
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        f"SELECT c.document_id, c.chunk_index, c.content {where} "  # noqa: S608
        "ORDER BY c.chunk_index LIMIT ? OFFSET ?",
        (*params, limit, offset),
    )
    rows = await cursor.fetchall()
    return [Chunk(**dict(r)) for r in rows], total


class SqliteChunkStore:
    """``ChunkStore`` backed by one SQLite file, one connection per call."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    async def init(self) -> None:
        try:
            await init_sqlite(self.db_path)
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"cannot initialise {self.db_path}") from exc

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys=ON")
                yield db
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def get_chunk(
        self, document_id: str, index: int, owner_id: str | None = None
    ) -> PageChunk | None:
        async with self.connection() as db:
            return await get_chunk(db, document_id, index, owner_id)

    async def get_document_meta(
        self, document_id: str, owner_id: str | None = None
    ) -> Document | None:
        async with self.connection() as db:
            return await get_document(db, document_id, owner_id)

    async def update_last_read_index(self, document_id: str, index: int) -> bool:
        async with self.connection() as db:
            return await update_last_read_index(db, document_id, index)

    async def insert_document_with_chunks(
        self,
        metadata: DocumentCreate,
        chunks: Sequence[TextChunk],
        documents_limit: int | None = None,
    ) -> str:
        async with self.connection() as db:
            return await insert_document_with_chunks(db, metadata, chunks, documents_limit)

    async def delete_document(
        self, document_id: str, owner_id: str | None = None
    ) -> bool:
        async with self.connection() as db:
            return await delete_document(db, document_id, owner_id)
