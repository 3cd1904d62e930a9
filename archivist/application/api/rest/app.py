import logging
from contextlib import asynccontextmanager

import logfire
from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from archivist.application.api.v1.errors import map_archivist_error
from archivist.application.api.v1.routes import attachments, health, records
from archivist.application.di import create_container
from archivist.config import Config, configure_logging
from archivist.domain.shared.authorization.policy_set import POLICY_SET
from archivist.domain.shared.error import ArchivistError, ConfigurationError
from archivist.infrastructure.persistence.database import create_tables
from archivist.infrastructure.schedule.runner import ScheduleRunner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: AsyncContainer = app.state.dishka_container
    config = await container.get(Config)

    if config.database.auto_create:
        engine = await container.get(AsyncEngine)
        await create_tables(engine)

    if config.lifecycle.enabled:
        runner = await container.get(ScheduleRunner)
        async with runner:
            yield
    else:
        logger.info("Lifecycle schedules disabled")
        yield

    await container.close()


def create_app(config: Config | None = None) -> FastAPI:
    """Create FastAPI application."""
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    # Configure logging early
    configure_logging(config.logging)
    logger.info("Starting %s server v%s", config.server.name, config.server.version)

    # Every action must have a policy rule (fail fast)
    POLICY_SET.validate_coverage()

    if not config.auth.jwt.secret:
        raise ConfigurationError("No JWT secret configured (set ARCHIVIST_AUTH__JWT__SECRET)")

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    if config.logging.logfire:
        logfire.configure(send_to_logfire="if-token-present")
        logfire.instrument_fastapi(app_instance)

    container = create_container(config)
    setup_dishka(container, app_instance)

    app_instance.include_router(health.router, prefix="/api/v1")
    app_instance.include_router(records.router, prefix="/api/v1")
    app_instance.include_router(attachments.router, prefix="/api/v1")

    # Global Archivist error handler - maps domain and infrastructure errors to HTTP responses
    @app_instance.exception_handler(ArchivistError)
    async def archivist_error_handler(request: Request, exc: ArchivistError):
        http_exc = map_archivist_error(exc)
        return JSONResponse(
            status_code=http_exc.status_code,
            content=http_exc.detail,
            headers=http_exc.headers,
        )

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app_instance
