"""Primary-then-fallback document store."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from workassign.adapters.store.query import Query
from workassign.core.exceptions import TransportUnavailable
from workassign.core.interfaces import DocumentStore

logger = structlog.get_logger()

T = TypeVar("T")


class FallbackDocumentStore:
    """Routes each call to the primary store and retries on the fallback.

    Only TransportUnavailable triggers the fallback. Cancellation,
    caller-imposed timeouts and every domain error propagate unchanged.
    When the fallback fails too, the caller receives a retryable
    TransportUnavailable.
    """

    def __init__(self, primary: DocumentStore, fallback: DocumentStore) -> None:
        """Initialize the store.

        Args:
            primary: Preferred store.
            fallback: Store used when the primary is unreachable.
        """
        self.primary = primary
        self.fallback = fallback

    def new_id(self) -> str:
        """Generate an id for a new document."""
        return self.primary.new_id()

    async def _call(
        self,
        operation: str,
        path: str,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            return await primary()
        except TransportUnavailable as e:
            logger.warning(
                "store_primary_unavailable", operation=operation, path=path, error=str(e)
            )

        try:
            return await fallback()
        except TransportUnavailable as e:
            logger.error(
                "store_fallback_unavailable", operation=operation, path=path, error=str(e)
            )
            raise TransportUnavailable(
                "Unable to reach the document store. Please try again.", retryable=True
            ) from e

    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document."""
        return await self._call(
            "get",
            path,
            lambda: self.primary.get(path, doc_id),
            lambda: self.fallback.get(path, doc_id),
        )

    async def list(self, path: str, query: Query) -> list[dict[str, Any]]:
        """Run a query."""
        return await self._call(
            "list",
            path,
            lambda: self.primary.list(path, query),
            lambda: self.fallback.list(path, query),
        )

    async def set(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""
        await self._call(
            "set",
            path,
            lambda: self.primary.set(path, doc_id, data),
            lambda: self.fallback.set(path, doc_id, data),
        )

    async def update(self, path: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Merge fields into an existing document."""
        await self._call(
            "update",
            path,
            lambda: self.primary.update(path, doc_id, patch),
            lambda: self.fallback.update(path, doc_id, patch),
        )

    async def delete(self, path: str, doc_id: str) -> None:
        """Delete a document."""
        await self._call(
            "delete",
            path,
            lambda: self.primary.delete(path, doc_id),
            lambda: self.fallback.delete(path, doc_id),
        )
