import logging
from contextlib import asynccontextmanager

from opensearchpy import AsyncOpenSearch
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from todosearch.cache.layer import CacheLayer
from todosearch.core.config import Settings, get_settings
from todosearch.core.errors import SearchIndexError, StoreWriteFailure
from todosearch.core.logging import configure_logging
from todosearch.database import create_db_and_tables, create_engine, create_session_factory
from todosearch.routers import comments, search, todos, users
from todosearch.search.fanout import QueryFanout
from todosearch.search.gateway import SearchIndexGateway
from todosearch.search.sync import SearchSynchronizer

logger = logging.getLogger(__name__)


async def startup(
    app: FastAPI,
    settings: Settings,
    search_client: AsyncOpenSearch | None = None,
) -> None:
    """Build the store, index and cache clients once and attach them to app.state."""
    engine = create_engine(settings)
    if settings.create_tables:
        await create_db_and_tables(engine)

    gateway = SearchIndexGateway.from_settings(settings, search_client)
    try:
        await gateway.ensure_index()
    except SearchIndexError as e:
        # store operations still work, search degrades until the index is back
        logger.error(f"Search index unavailable at startup: {e}")

    cache = CacheLayer(settings)
    await cache.init_cache()

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.search_gateway = gateway
    app.state.synchronizer = SearchSynchronizer(gateway)
    app.state.fanout = QueryFanout(gateway)
    app.state.cache = cache


async def shutdown(app: FastAPI) -> None:
    await app.state.cache.close()
    await app.state.search_gateway.close()
    await app.state.engine.dispose()


async def store_write_failure_handler(request: Request, exc: StoreWriteFailure):
    logger.warning(f"Store write failed on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app, settings)
        yield
        await shutdown(app)

    app = FastAPI(
        title="Todo Search API",
        description="Todo API on SQLModel with an OpenSearch projection of todos and comments",
        swagger_ui_parameters={"displayRequestDuration": True},
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(StoreWriteFailure, store_write_failure_handler)

    # Include routers
    app.include_router(users.router)
    app.include_router(todos.router)
    app.include_router(comments.router)
    app.include_router(search.router)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to Todo Search API",
            "docs": "/docs",
            "version": "1.0.0",
        }

    @app.get("/health")
    async def health_check(request: Request):
        return {
            "status": "healthy",
            "cache": request.app.state.cache.get_stats(),
        }

    return app


app = create_app()
