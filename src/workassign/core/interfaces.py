"""Protocol definitions for all external dependencies.

This module defines the interfaces (Protocols) that adapters must implement.
The core domain only depends on these protocols, never on concrete implementations.
The document store, identity provider, clock and observability sink are all
passed in by constructor; there is no module-level client handle.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from workassign.adapters.store.query import Query

    from .domain_types import IdentityInfo
    from .exceptions import AuditWriteFailure


@runtime_checkable
class DocumentStore(Protocol):
    """Interface for a hierarchical document store.

    Paths are slash-separated collection paths such as ``orgs/acme/tasks``.
    Documents are plain dicts; ``get`` and ``list`` include the document id
    under ``"id"``.

    Implementations raise TransportUnavailable when the backend cannot be
    reached, so a fallback transport can take over. Cancellation and
    timeouts imposed by the caller must propagate unchanged.
    """

    def new_id(self) -> str:
        """Generate an id for a new document."""
        ...

    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document, or None if it does not exist."""
        ...

    async def list(self, path: str, query: Query) -> list[dict[str, Any]]:
        """Run the server-side part of a query against a collection."""
        ...

    async def set(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""
        ...

    async def update(self, path: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            EntityNotFound: If the document does not exist.
        """
        ...

    async def delete(self, path: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Interface for the external identity provider."""

    async def verify_token(self, token: str) -> IdentityInfo:
        """Verify a bearer token.

        Raises:
            TokenError: If the token is invalid, expired or revoked.
        """
        ...

    async def sign_out(self, user_id: str) -> None:
        """End every session of a user."""
        ...


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(UTC)


@runtime_checkable
class ObservabilitySink(Protocol):
    """Receives failures that must not reach end users."""

    def report(self, failure: AuditWriteFailure) -> None:
        """Report a best-effort failure."""
        ...
