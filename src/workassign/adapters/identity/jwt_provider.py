"""Identity provider backed by signed bearer tokens."""

import logging

from workassign.core.auth.jwt import TokenError, decode_id_token
from workassign.core.domain_types import IdentityInfo
from workassign.core.interfaces import Clock, SystemClock

logger = logging.getLogger(__name__)


class JwtIdentityProvider:
    """Verifies HS256 identity tokens.

    ``sign_out`` revokes every token of a user issued up to that moment;
    tokens issued afterwards are accepted again.
    """

    def __init__(self, secret: str, clock: Clock | None = None) -> None:
        """Initialize the provider.

        Args:
            secret: Token signing secret.
            clock: Time source for revocation cutoffs.
        """
        self._secret = secret
        self._clock = clock or SystemClock()
        self._revoked_before: dict[str, int] = {}

    async def verify_token(self, token: str) -> IdentityInfo:
        """Verify a token and return the identity it carries.

        Raises:
            TokenError: If the token is invalid, expired or revoked.
        """
        identity = decode_id_token(token, self._secret)
        cutoff = self._revoked_before.get(identity.user_id)
        if cutoff is not None and (identity.issued_at is None or identity.issued_at <= cutoff):
            raise TokenError("Token has been revoked")
        return identity

    async def sign_out(self, user_id: str) -> None:
        """Revoke all current sessions of a user."""
        self._revoked_before[user_id] = int(self._clock.now().timestamp())
        logger.info(f"Signed out user {user_id}")
