"""Web entry point — FastAPI app factory and lifespan wiring."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from uvocollab import __version__
from uvocollab.config import load_settings
from uvocollab.database import CosmosClient
from uvocollab.database.repositories import (
    CollaborationRepository,
    NotificationRepository,
)
from uvocollab.errors import CollaborationError
from uvocollab.events import ServiceBusPublisher
from uvocollab.health import check_emulators
from uvocollab.lifecycle import CollaborationLifecycleManager
from uvocollab.logging import configure_logging
from uvocollab.routes import (
    collaborations_router,
    contracts_router,
    notifications_router,
    status_router,
)
from uvocollab.services import ESignClient, NotificationService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

    from uvocollab.config import Settings

logger = logging.getLogger(__name__)

_DEVELOPMENT_SECRET = "uvocollab-development-only"


def _session_secret(settings: Settings) -> str:
    if settings.app.secret_key:
        return settings.app.secret_key
    if settings.app.is_development:
        logger.warning("APP_SECRET_KEY is not set — using the development session secret")
        return _DEVELOPMENT_SECRET
    raise RuntimeError("APP_SECRET_KEY must be set outside development")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the document store and collaborators; close them on shutdown."""
    settings: Settings = app.state.settings

    if settings.app.is_development and not await check_emulators(settings):
        raise RuntimeError("Local dependencies are not reachable")

    cosmos = CosmosClient(settings.cosmos)
    await cosmos.initialize()

    event_publisher = (
        ServiceBusPublisher(settings.servicebus)
        if settings.servicebus.connection_string
        else None
    )
    contracts = ESignClient(settings.contracts)
    notifications = NotificationService(NotificationRepository(cosmos.database))

    app.state.cosmos = cosmos
    app.state.contracts = contracts
    app.state.event_publisher = event_publisher
    app.state.notifications = notifications
    app.state.lifecycle = CollaborationLifecycleManager(
        CollaborationRepository(cosmos.database),
        notifications,
        contracts,
        event_publisher,
        base_url=settings.app.base_url,
    )
    logger.info(
        "Web app started — env=%s events=%s",
        settings.app.env,
        "enabled" if event_publisher else "disabled",
    )

    try:
        yield
    finally:
        logger.info("Web app shutting down")
        if event_publisher is not None:
            await event_publisher.close()
        await contracts.close()
        await cosmos.close()


async def collaboration_error_handler(
    request: Request, exc: CollaborationError
) -> JSONResponse:
    """Map a rejected lifecycle operation to ``{"error": message}``."""
    logger.info(
        "Request rejected — path=%s error=%s status=%d",
        request.url.path,
        type(exc).__name__,
        exc.status_code,
    )
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error — path=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = load_settings()
    configure_logging(settings.app.log_level)

    app = FastAPI(title="UvoCollab", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(SessionMiddleware, secret_key=_session_secret(settings))

    slow_request_ms = settings.app.slow_request_ms

    @app.middleware("http")
    async def log_slow_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > slow_request_ms:
            logger.warning(
                "Slow request — method=%s path=%s status=%d elapsed_ms=%.0f",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        return response

    app.add_exception_handler(CollaborationError, collaboration_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(status_router)
    app.include_router(collaborations_router)
    app.include_router(contracts_router)
    app.include_router(notifications_router)
    return app


def main() -> None:
    """Entry point for the web process."""
    uvicorn.run(
        "uvocollab.app:create_app",
        factory=True,
        host="0.0.0.0",  # noqa: S104
        port=8000,
    )


if __name__ == "__main__":
    main()
