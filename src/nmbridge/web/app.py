"""FastAPI application for the network REST API."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.errors import (
    LockError,
    NMBridgeError,
    NotImplementedOperationError,
    NotInitializedError,
    OperationError,
    PermissionDeniedError,
    TransportError,
    UnsupportedSecurityError,
    ValidationError,
)
from ..network.context import NetworkContext
from ..network.models import NetworkRecord
from .routes import network_router
from .schemas import ErrorResponse

logger = logging.getLogger(__name__)

# Checked in order; subclasses come before their bases
ERROR_STATUS: list[tuple[type[NMBridgeError], int]] = [
    (NotInitializedError, 503),
    (TransportError, 503),
    (LockError, 503),
    (ValidationError, 400),
    (UnsupportedSecurityError, 400),
    (PermissionDeniedError, 403),
    (NotImplementedOperationError, 501),
    (OperationError, 502),
]


def status_for(error: NMBridgeError) -> int:
    for error_cls, status in ERROR_STATUS:
        if isinstance(error, error_cls):
            return status
    return 500


def create_app(context: NetworkContext, manage_lifecycle: bool = False) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        context: Network context the routes operate on
        manage_lifecycle: Initialise the context (and start notifications when
            enabled in config) on startup, close it on shutdown

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            await run_in_threadpool(_open_context, context)
        try:
            yield
        finally:
            if manage_lifecycle:
                await run_in_threadpool(context.close)

    app = FastAPI(
        title="nm-bridge",
        description="NetworkManager bridge API",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Store in app state
    app.state.context = context
    app.state.trackers = {}

    app.include_router(network_router)

    @app.exception_handler(NMBridgeError)
    async def bridge_error_handler(request: Request, exc: NMBridgeError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)

        body = ErrorResponse(error=exc.__class__.__name__, detail=exc.message)
        return JSONResponse(status_code=status, content=body.model_dump())

    return app


def _open_context(context: NetworkContext) -> None:
    context.initialize()
    if context.config.notifier.enabled:
        context.subscribe(_log_change)
        context.start_notifications()


def _log_change(record: NetworkRecord) -> None:
    logger.info(
        "Network changed: %s (%s, connected=%s)",
        record.name,
        record.connection_kind,
        record.is_connected,
    )
