import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pageturner.config import Settings, settings
from pageturner.db.sqlite import SqliteChunkStore
from pageturner.errors import (
    DocumentLimitExceededError,
    InvalidArgumentError,
    StoreUnavailableError,
    UserAlreadyExistsError,
)
from pageturner.services.pagination import PaginationService
from pageturner.services.read_cache import ReadCache
from pageturner.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings: Settings = app.state.settings

    store = SqliteChunkStore(app_settings.data_dir / app_settings.sqlite_filename)
    await store.init()
    cache = ReadCache(
        default_ttl=app_settings.cache_default_ttl,
        invalidation_ttl=app_settings.cache_invalidation_ttl,
    )
    tasks = TaskRegistry()

    app.state.store = store
    app.state.cache = cache
    app.state.tasks = tasks
    app.state.pagination = PaginationService(
        store,
        cache,
        tasks,
        page_ttl=app_settings.page_cache_ttl,
        prefetch_timeout=app_settings.prefetch_timeout,
    )

    sweeper = asyncio.create_task(
        cache.run_sweeper(app_settings.cache_sweep_interval), name="read-cache-sweeper"
    )
    logger.info("PageTurner started, database at %s", store.db_path)
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await tasks.drain(app_settings.shutdown_drain_timeout)
        cache.clear()


async def _invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _document_limit(request: Request, exc: DocumentLimitExceededError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": "books limit!"})


async def _user_exists(request: Request, exc: UserAlreadyExistsError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": "User already registered"})


async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "storage temporarily unavailable"})


def create_app(app_settings: Settings | None = None) -> FastAPI:
    application = FastAPI(
        title="PageTurner Backend", version="0.1.0", lifespan=lifespan
    )
    application.state.settings = app_settings or settings

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(InvalidArgumentError, _invalid_argument)
    application.add_exception_handler(DocumentLimitExceededError, _document_limit)
    application.add_exception_handler(UserAlreadyExistsError, _user_exists)
    application.add_exception_handler(StoreUnavailableError, _store_unavailable)

    from pageturner.routers import documents, health, reader, upload, users

    application.include_router(health.router)
    application.include_router(users.router, prefix="/users", tags=["users"])
    application.include_router(
        upload.router, prefix="/documents", tags=["documents"]
    )
    application.include_router(
        documents.router, prefix="/documents", tags=["documents"]
    )
    application.include_router(reader.router, prefix="/r", tags=["reader"])

    return application


app = create_app()
