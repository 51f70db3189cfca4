"""FastAPI application entrypoint.

Run with ``uvicorn reelstudio.main:create_app --factory``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reelstudio.adapters.provider import HttpVideoProvider, MockVideoProvider, VideoProvider
from reelstudio.core.config import Settings, get_settings
from reelstudio.core.logging_config import configure_logging
from reelstudio.errors import ApiError
from reelstudio.repositories.database import Database
from reelstudio.routes import balance_router, internal_router, jobs_router, works_router
from reelstudio.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


def _build_provider(settings: Settings) -> VideoProvider:
    if settings.provider == "mock":
        return MockVideoProvider()
    return HttpVideoProvider(
        base_url=settings.provider_base_url,
        api_key=settings.provider_api_key,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def _validation_fields(exc: RequestValidationError) -> list[str]:
    return [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]


def create_app(database: Database | None = None, provider: VideoProvider | None = None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    if database is None:
        database = Database(settings.database_url, echo=settings.database_echo)
    database.create_schema()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.provider.close()
        logger.info("app.shutdown provider=%s", type(app.state.provider).__name__)

    app = FastAPI(title="Reelstudio Generation Ledger API", version="1.0.0", lifespan=lifespan)
    app.state.database = database
    app.state.provider = provider if provider is not None else _build_provider(settings)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = _validation_fields(exc)
        logger.info("request.invalid method=%s path=%s fields=%s", request.method, request.url.path, ",".join(fields))
        payload = ErrorResponse(code="VALIDATION_ERROR", message="Invalid request payload", details={"fields": fields})
        return JSONResponse(status_code=422, content=payload.model_dump())

    api_prefix = "/api/v1"
    app.include_router(works_router, prefix=api_prefix)
    app.include_router(jobs_router, prefix=api_prefix)
    app.include_router(balance_router, prefix=api_prefix)
    app.include_router(internal_router, prefix=api_prefix)

    logger.info(
        "app.created provider=%s auth_provider=%s dialect=%s",
        type(app.state.provider).__name__,
        settings.auth_provider,
        database.engine.dialect.name,
    )
    return app
