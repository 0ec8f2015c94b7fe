"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and
the exception handlers that translate domain errors into HTTP responses.
"""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ledgerline.core.config import settings
from ledgerline.core.exceptions import (
    ConflictException,
    ExternalServiceError,
    InvalidInputError,
    InvalidStateError,
    LedgerlineException,
    NotFoundException,
    PermissionException,
    unpack_validation_error,
)
from ledgerline.core.logging import logger

# Seconds a client should wait before retrying a request that lost a balance race
CONFLICT_RETRY_AFTER_SECONDS = 1


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    An incoming ``X-Request-ID`` is honored so callers can correlate logs.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", "")).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {"detail": f"Internal Server Error: {exc.__class__.__name__}"}
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for request and schema validation errors.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (RequestValidationError | ValidationError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity response listing each invalid field.

    Example of JSON output:
        {
            "errors": [
                {"body.input_tokens": "Input should be a valid integer"}
            ]
        }

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def invalid_input_exception_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    """Exception handler for InvalidInputError.

    Returns:
    -------
        JSONResponse: A 422 response naming the offending field when known.

    """
    content = {"detail": str(exc)}
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=422, content=content)


async def permission_exception_handler(request: Request, exc: PermissionException) -> JSONResponse:
    """Exception handler for PermissionException.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (PermissionException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 403 Forbidden status response that details the error message.

    """
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (NotFoundException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def conflict_exception_handler(request: Request, exc: ConflictException) -> JSONResponse:
    """Exception handler for ConflictException.

    Returns:
    -------
        JSONResponse: A 409 Conflict response with a ``Retry-After`` header.

    """
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc)},
        headers={"Retry-After": str(CONFLICT_RETRY_AFTER_SECONDS)},
    )


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (InvalidStateError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Exception handler for ExternalServiceError.

    Returns:
    -------
        JSONResponse: A 502 Bad Gateway response naming the failing service.

    """
    logger.error(f"External service error: {exc}")
    return JSONResponse(
        status_code=502, content={"detail": exc.message, "service": exc.service_name}
    )


async def ledgerline_exception_handler(request: Request, exc: LedgerlineException) -> JSONResponse:
    """Fallback for LedgerlineException subclasses without a dedicated handler."""
    logger.error(f"Unmapped {exc.__class__.__name__}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})
