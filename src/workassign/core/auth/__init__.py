"""Identity token handling."""

from workassign.core.auth.jwt import TokenError, create_id_token, decode_id_token

__all__ = ["TokenError", "create_id_token", "decode_id_token"]
