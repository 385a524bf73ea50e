import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance import router as attendance_router
from core.db import Database, DatabaseError
from core.settings import Settings
from core.storage import ObjectStorage, StorageError
from news import router as news_router
from uploads import router as uploads_router

logger = logging.getLogger(__name__)


def _upstream_failure(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "upstream_failure method=%s path=%s error=%s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Failed"})


def create_app(
    settings: Settings | None = None,
    *,
    db: Database | None = None,
    storage: ObjectStorage | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    db = db or Database(
        settings.database_url,
        max_size=settings.db_pool_max_size,
        connect_timeout_s=settings.db_connect_timeout_s,
        command_timeout_s=settings.db_command_timeout_s,
    )
    storage = storage or ObjectStorage(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # "eager" connects once per process at startup; "lazy" on first query.
        if settings.db_connect_strategy == "eager":
            await db.ensure_ready()
        try:
            yield
        finally:
            await db.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DatabaseError)
    async def database_failed(request: Request, exc: DatabaseError) -> JSONResponse:
        return _upstream_failure(request, exc)

    @app.exception_handler(StorageError)
    async def storage_failed(request: Request, exc: StorageError) -> JSONResponse:
        return _upstream_failure(request, exc)

    app.include_router(news_router.router, tags=["news"])
    app.include_router(uploads_router.router, tags=["uploads"])
    app.include_router(attendance_router.router, tags=["attendance"])

    @app.get("/api/health")
    def health() -> dict:
        return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/db-health")
    async def db_health() -> JSONResponse:
        t0 = time.perf_counter()
        try:
            await db.ping()
        except DatabaseError as exc:
            return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})
        return JSONResponse(content={"ok": True, "ms": int((time.perf_counter() - t0) * 1000)})

    @app.get("/")
    def root() -> dict:
        return {"message": "news & attendance api"}

    return app


app = create_app()
