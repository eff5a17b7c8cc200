import logging
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from apsync.application.api.v1.errors import map_error
from apsync.application.api.v1.routes import connections, oauth, setup, webhook
from apsync.application.di import create_container
from apsync.config import Config, configure_logging
from apsync.domain.shared.error import ApsyncError, ExternalServiceError
from apsync.infrastructure.schedule.pool import SchedulePool
from apsync.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container

    # Background schedules (expired session sweep) live as long as the server
    pool = await container.get(SchedulePool)
    async with pool:
        yield

    await container.close()


def include_routes(app: FastAPI) -> None:
    app.include_router(oauth.router)
    app.include_router(connections.router)
    app.include_router(setup.router)
    app.include_router(webhook.router)


async def discard_unit_of_work(request: Request) -> None:
    """Roll back the request session so the closing UOW scope commits nothing."""
    container = getattr(request.state, "dishka_container", None)
    if container is None:
        return
    session = await container.get(AsyncSession)
    await session.rollback()


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApsyncError)
    async def apsync_error_handler(request: Request, exc: ApsyncError):
        # Upstream failures keep their sync_log rows and consumed sessions
        if not isinstance(exc, ExternalServiceError):
            await discard_unit_of_work(request)
        error = map_error(exc)
        if error.status_code >= 500:
            logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

    # Global exception handler - logs all unhandled exceptions
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": {"code": "internal_error", "message": "Internal server error"}},
        )


def create_app(config: Config | None = None) -> FastAPI:
    """Create FastAPI application."""
    config = config or Config()

    configure_logging(config.logging)
    logger.info("Starting %s v%s", config.server.name, config.server.version)

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    if config.logging.logfire:
        logfire.configure(service_name=config.server.name, send_to_logfire="if-token-present")
    logfire.instrument_httpx()
    logfire.instrument_fastapi(app_instance)

    container = create_container(config)
    setup_dishka(container, app_instance)

    include_routes(app_instance)
    add_exception_handlers(app_instance)

    return app_instance
