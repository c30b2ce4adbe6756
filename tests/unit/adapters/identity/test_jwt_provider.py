"""Unit tests for identity tokens and JwtIdentityProvider."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import pytest

from workassign.adapters.identity import JwtIdentityProvider
from workassign.core.auth.jwt import TokenError, create_id_token, decode_id_token
from tests.fixtures.domain_objects import FixedClock

SECRET = "unit-test-secret-that-is-long-enough"


def _token(user_id: str = "u1", **claims: Any) -> str:
    return create_id_token(SECRET, user_id, f"{user_id}@acme.test", **claims)


class TestIdTokens:
    """Tests for create_id_token and decode_id_token."""

    def test_round_trip_claims(self) -> None:
        """Test that every claim survives encoding."""
        token = _token(display_name="Uma", org_id="org-acme", email_verified=False)

        identity = decode_id_token(token, SECRET)

        assert identity.user_id == "u1"
        assert identity.email == "u1@acme.test"
        assert identity.email_verified is False
        assert identity.display_name == "Uma"
        assert identity.org_id == "org-acme"
        assert identity.issued_at is not None

    def test_expired_token(self) -> None:
        """Test that expiry is enforced."""
        token = _token(expires_in=timedelta(seconds=-30))

        with pytest.raises(TokenError, match="expired"):
            decode_id_token(token, SECRET)

    def test_wrong_secret(self) -> None:
        """Test that a token signed with another secret is rejected."""
        with pytest.raises(TokenError, match="Invalid token"):
            decode_id_token(_token(), "another-secret-that-is-long-enough!!")

    def test_missing_subject(self) -> None:
        """Test that a token without a subject is rejected."""
        token = jwt.encode({"email": "x@acme.test"}, SECRET, algorithm="HS256")

        with pytest.raises(TokenError, match="missing subject"):
            decode_id_token(token, SECRET)


class TestJwtIdentityProvider:
    """Tests for JwtIdentityProvider."""

    async def test_verifies_token(self) -> None:
        """Test a valid token."""
        provider = JwtIdentityProvider(SECRET)

        identity = await provider.verify_token(_token())

        assert identity.user_id == "u1"

    async def test_sign_out_revokes_existing_tokens(self) -> None:
        """Test that tokens issued before sign-out stop working."""
        clock = FixedClock(datetime.now(UTC) + timedelta(minutes=1))
        provider = JwtIdentityProvider(SECRET, clock)
        token = _token()

        await provider.sign_out("u1")

        with pytest.raises(TokenError, match="revoked"):
            await provider.verify_token(token)

    async def test_tokens_after_sign_out_are_accepted(self) -> None:
        """Test that signing in again works after a sign-out."""
        clock = FixedClock(datetime.now(UTC) - timedelta(minutes=5))
        provider = JwtIdentityProvider(SECRET, clock)

        await provider.sign_out("u1")

        identity = await provider.verify_token(_token())
        assert identity.user_id == "u1"

    async def test_sign_out_is_per_user(self) -> None:
        """Test that other users keep their sessions."""
        clock = FixedClock(datetime.now(UTC) + timedelta(minutes=1))
        provider = JwtIdentityProvider(SECRET, clock)

        await provider.sign_out("u1")

        identity = await provider.verify_token(_token("u2"))
        assert identity.user_id == "u2"
