"""FastAPI service proxying weather.com PWS history and ingesting daily summaries."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from jobs.config import Settings, load_settings
from jobs.ingest import fetch_history, ingest_daily
from jobs.scheduler import build_scheduler
from pipelines.errors import PwsDailyError, StoreUnavailable
from storage.db import DuckDBDailyStore

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}

load_dotenv()

logger = logging.getLogger(__name__)


def _is_api_path(request: Request) -> bool:
    return request.url.path.startswith("/api")


async def _open_store(settings: Settings) -> DuckDBDailyStore | None:
    if not settings.database_url:
        return None
    try:
        store = DuckDBDailyStore(settings.database_url)
        await store.initialize()
    except StoreUnavailable as exc:
        logger.error("DB init failed (continuo sin DB): %s", exc)
        return None
    return store


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the application; ``http_client`` replaces the upstream client (tests)."""

    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Config: %s", settings.describe())
        client = http_client or httpx.AsyncClient(timeout=settings.upstream_timeout)
        store = await _open_store(settings)
        app.state.http_client = client
        app.state.store = store

        async def _scheduled_ingest(station_id: str, date_code: str):
            return await ingest_daily(
                station_id,
                date_code,
                settings=settings,
                store=app.state.store,
                client=app.state.http_client,
            )

        scheduler = build_scheduler(settings, _scheduled_ingest) if store else None
        if scheduler:
            scheduler.start()
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            if scheduler:
                await scheduler.stop()
            if http_client is None:
                await client.aclose()

    app = FastAPI(title="PWS Daily", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def no_cache_for_api(request: Request, call_next):
        response = await call_next(request)
        if _is_api_path(request):
            response.headers.update(NO_CACHE_HEADERS)
        return response

    @app.exception_handler(PwsDailyError)
    async def pws_error_handler(request: Request, exc: PwsDailyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.to_payload())
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if request.url.path.startswith("/api/ingest"):
            message = "Fallo ingest"
        else:
            message = "Error al consultar Weather.com"
        headers = NO_CACHE_HEADERS if _is_api_path(request) else None
        return JSONResponse(
            status_code=500,
            content={"error": message, "details": str(exc)},
            headers=headers,
        )

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/wu/history")
    async def wu_history(
        request: Request,
        station_id: str | None = Query(None, alias="stationId"),
        date: str | None = Query(None, description="Requested day as YYYYMMDD"),
    ) -> Response:
        status_code, body = await fetch_history(
            station_id,
            date,
            settings=settings,
            client=request.app.state.http_client,
        )
        if isinstance(body, str):
            return Response(content=body, status_code=status_code, media_type="application/json")
        return JSONResponse(content=body, status_code=status_code)

    @app.get("/api/ingest/daily")
    async def ingest(
        request: Request,
        station_id: str | None = Query(None, alias="stationId"),
        date: str | None = Query(None, description="Requested day as YYYYMMDD"),
    ) -> dict[str, object]:
        result = await ingest_daily(
            station_id,
            date,
            settings=settings,
            store=request.app.state.store,
            client=request.app.state.http_client,
        )
        return result.to_response()

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


app = create_app()
