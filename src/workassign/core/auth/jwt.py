"""Identity token creation and validation."""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from workassign.core.domain_types import IdentityInfo


class TokenError(Exception):
    """Raised when token validation fails."""

    pass


ALGORITHM = "HS256"
ID_TOKEN_EXPIRE_MINUTES = 60


def create_id_token(
    secret: str,
    user_id: str,
    email: str,
    email_verified: bool = True,
    display_name: str | None = None,
    org_id: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """Create a signed identity token.

    Token issuance belongs to the identity provider; this exists for local
    development and tests.

    Args:
        secret: Signing secret.
        user_id: Subject (user id).
        email: User email.
        email_verified: Whether the email is verified.
        display_name: Optional display name.
        org_id: Optional organization claim.
        expires_in: Lifetime, defaults to ID_TOKEN_EXPIRE_MINUTES.

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_in or timedelta(minutes=ID_TOKEN_EXPIRE_MINUTES))

    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "email_verified": email_verified,
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }
    if display_name:
        payload["name"] = display_name
    if org_id:
        payload["org_id"] = org_id

    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_id_token(token: str, secret: str) -> IdentityInfo:
    """Decode and validate an identity token.

    Args:
        token: Encoded JWT string
        secret: Signing secret.

    Returns:
        Identity carried by the token.

    Raises:
        TokenError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}") from None

    if not payload.get("sub"):
        raise TokenError("Invalid token: missing subject")

    return IdentityInfo(
        user_id=payload["sub"],
        email=payload.get("email"),
        email_verified=bool(payload.get("email_verified", False)),
        display_name=payload.get("name"),
        org_id=payload.get("org_id"),
        issued_at=payload.get("iat"),
    )
