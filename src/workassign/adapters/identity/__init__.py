"""Identity provider adapters."""

from workassign.adapters.identity.jwt_provider import JwtIdentityProvider

__all__ = ["JwtIdentityProvider"]
