"""Main module of the FastAPI application.

This module sets up the FastAPI application, its middleware and the exception
handlers that map billing errors to HTTP responses.
"""

import os
import subprocess
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ledgerline.api.middleware import (
    add_request_id,
    conflict_exception_handler,
    exception_logging_middleware,
    external_service_exception_handler,
    invalid_input_exception_handler,
    invalid_state_exception_handler,
    ledgerline_exception_handler,
    log_requests,
    not_found_exception_handler,
    permission_exception_handler,
    validation_exception_handler,
)
from ledgerline.api.v1.api import api_router
from ledgerline.core.config import settings
from ledgerline.core.exceptions import (
    ConflictException,
    ExternalServiceError,
    InvalidInputError,
    InvalidStateError,
    LedgerlineException,
    NotFoundException,
    PermissionException,
)
from ledgerline.core.logging import logger
from ledgerline.db.session import async_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container, optionally runs alembic migrations and
    starts the internal metrics server.
    """
    from ledgerline.core import container as container_mod
    from ledgerline.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")

    if settings.RUN_ALEMBIC_MIGRATIONS:
        logger.info("Running alembic migrations...")
        env = os.environ.copy()
        backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        env["PYTHONPATH"] = backend_dir
        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            cwd=backend_dir,
            env=env,
        )

    metrics_server = None
    if settings.METRICS_ENABLED:
        from ledgerline.api.metrics import MetricsServer

        metrics_server = MetricsServer(
            renderer=container_mod.container.metrics_renderer,
            port=settings.METRICS_PORT,
            host=settings.METRICS_HOST,
        )
        await metrics_server.start()

    yield

    if metrics_server is not None:
        await metrics_server.stop()
    await async_engine.dispose()
    container_mod.reset_container()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Register middleware directly in the correct order
# Order matters: first registered = innermost middleware
app.middleware("http")(exception_logging_middleware)
app.middleware("http")(log_requests)
app.middleware("http")(add_request_id)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(InvalidInputError)(invalid_input_exception_handler)
app.exception_handler(PermissionException)(permission_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(ConflictException)(conflict_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(LedgerlineException)(ledgerline_exception_handler)
