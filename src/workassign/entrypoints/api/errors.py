"""Translation of domain errors into HTTP responses.

PermissionDenied never carries entity contents to the client: the body is
always the generic "Not authorized" message, and the required role or
ownership set only reaches the logs.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from workassign.core.exceptions import (
    NOT_AUTHORIZED_MESSAGE,
    AppendOnlyViolation,
    EntityNotFound,
    InvalidRequest,
    InvalidTransition,
    PermissionDenied,
    QueryCompositionError,
    StoreRequestError,
    TenantIsolationViolation,
    TransportUnavailable,
)

logger = structlog.get_logger()

RETRY_AFTER_SECONDS = 5


async def permission_denied_handler(request: Request, exc: Exception) -> JSONResponse:
    """403, or 401 with a sign-out signal for disabled accounts."""
    assert isinstance(exc, PermissionDenied)
    logger.info(
        "permission_denied",
        path=request.url.path,
        action=exc.action,
        required_role=exc.required_role,
        required_ownership=exc.required_ownership,
        force_sign_out=exc.force_sign_out,
    )
    if exc.force_sign_out:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": NOT_AUTHORIZED_MESSAGE, "signOut": True},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": NOT_AUTHORIZED_MESSAGE},
    )


async def invalid_transition_handler(request: Request, exc: Exception) -> JSONResponse:
    """409 naming the current and requested status."""
    assert isinstance(exc, InvalidTransition)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "current": exc.current, "requested": exc.requested},
    )


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    """404; also returned for ids of other organizations."""
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    """400 for domain rule violations and unservable queries."""
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """422 for commands that fail model validation inside a route."""
    assert isinstance(exc, ValidationError)
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.errors(include_url=False, include_context=False, include_input=False)
        },
    )


async def append_only_handler(request: Request, exc: Exception) -> JSONResponse:
    """405 for attempts to modify the audit log."""
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED, content={"detail": str(exc)}
    )


async def transport_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """503 with Retry-After when neither store transport answered."""
    assert isinstance(exc, TransportUnavailable)
    logger.error("store_unavailable", path=request.url.path, error=str(exc))
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "retryable": exc.retryable},
        headers=headers,
    )


async def store_request_handler(request: Request, exc: Exception) -> JSONResponse:
    """502 for requests the store rejected."""
    assert isinstance(exc, StoreRequestError)
    logger.error(
        "store_request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        details=exc.details,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Document store rejected the request"},
    )


async def tenant_isolation_handler(request: Request, exc: Exception) -> JSONResponse:
    """500; the request is aborted and nothing about it is echoed."""
    user = getattr(request.state, "user", None)
    logger.critical(
        "request_aborted_tenant_isolation",
        path=request.url.path,
        user_id=getattr(user, "id", None),
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handlers on an application."""
    app.add_exception_handler(PermissionDenied, permission_denied_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(EntityNotFound, not_found_handler)
    app.add_exception_handler(InvalidRequest, bad_request_handler)
    app.add_exception_handler(QueryCompositionError, bad_request_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(AppendOnlyViolation, append_only_handler)
    app.add_exception_handler(TransportUnavailable, transport_unavailable_handler)
    app.add_exception_handler(StoreRequestError, store_request_handler)
    app.add_exception_handler(TenantIsolationViolation, tenant_isolation_handler)
