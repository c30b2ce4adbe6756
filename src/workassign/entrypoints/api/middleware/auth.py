"""Bearer token authentication."""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from workassign.core.auth.jwt import TokenError
from workassign.core.domain_types import SessionUser
from workassign.entrypoints.api.deps import get_session_service

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> SessionUser:
    """Authenticate the bearer token and build the session user.

    The profile is provisioned on first sign-in. Disabled accounts surface
    as PermissionDenied with force_sign_out, which the error handlers turn
    into a 401.

    Args:
        request: The current request.
        credentials: Bearer token credentials.

    Returns:
        The authenticated actor.

    Raises:
        HTTPException: 401 if the token is missing, invalid or revoked.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session_service = get_session_service(request)
    try:
        actor = await session_service.establish(credentials.credentials)
    except TokenError as e:
        logger.warning(f"token_validation_failed: {e}")
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    request.state.user = actor

    logger.debug(
        f"session_established: user_id={actor.id}, org_id={actor.org_id}, role={actor.role.value}"
    )
    return actor


CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
