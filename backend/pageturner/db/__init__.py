from pageturner.db.sqlite import SqliteChunkStore, init_sqlite
from pageturner.db.store import ChunkStore

__all__ = ["ChunkStore", "SqliteChunkStore", "init_sqlite"]
