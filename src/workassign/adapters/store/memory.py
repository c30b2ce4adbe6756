"""In-memory document store for development and testing."""

from __future__ import annotations

import copy
from collections import deque
from typing import Any
from uuid import uuid4

from workassign.adapters.store.query import (
    IndexCatalog,
    Query,
    matches_all,
    sort_documents,
)
from workassign.core.exceptions import EntityNotFound, MissingIndexError, TransportUnavailable

# Calls kept in InMemoryDocumentStore.calls
MAX_LOGGED_CALLS = 1000


class InMemoryDocumentStore:
    """Dict-backed document store.

    This adapter is useful for:
    - Unit testing without a hosted store
    - Development without network access
    - Simulating an outage (``available = False``) to exercise fallback

    Documents are deep-copied in and out, so callers never share state
    with the store. Without an explicit ordering, results come back in
    document id order. One difference from the hosted store: documents
    missing the ordering field are returned last rather than excluded.

    Attributes:
        available: When False every call raises TransportUnavailable.
        calls: Most recent (operation, path) pairs, for assertions in tests.
    """

    def __init__(
        self,
        indexes: IndexCatalog | None = None,
        enforce_indexes: bool = False,
        max_calls: int = MAX_LOGGED_CALLS,
    ) -> None:
        """Initialize the store.

        Args:
            indexes: Composite indexes considered provisioned.
            enforce_indexes: Reject server-side orderings that the catalog
                does not cover, as the hosted store does.
            max_calls: How many recent calls to keep in ``calls``.
        """
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.indexes = indexes or IndexCatalog()
        self.enforce_indexes = enforce_indexes
        self.available = True
        self.calls: deque[tuple[str, str]] = deque(maxlen=max_calls)

    def _check(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        if not self.available:
            raise TransportUnavailable(f"In-memory store offline ({operation} {path})")

    def new_id(self) -> str:
        """Generate an id for a new document."""
        return uuid4().hex

    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document, or None if it does not exist."""
        self._check("get", path)
        document = self._collections.get(path, {}).get(doc_id)
        if document is None:
            return None
        return {**copy.deepcopy(document), "id": doc_id}

    async def list(self, path: str, query: Query) -> list[dict[str, Any]]:
        """Filter, order and page a collection."""
        self._check("list", path)
        if self.enforce_indexes and query.order_by:
            self._require_index(query)

        documents = [
            {**copy.deepcopy(data), "id": doc_id}
            for doc_id, data in sorted(self._collections.get(path, {}).items())
        ]
        documents = [d for d in documents if matches_all(query.predicates, d)]
        if query.order_by:
            documents = sort_documents(documents, query.order_by)

        if query.start_after is not None:
            ids = [d["id"] for d in documents]
            if query.start_after not in ids:
                return []
            documents = documents[ids.index(query.start_after) + 1 :]

        if query.limit is not None:
            documents = documents[: query.limit]
        return documents

    async def set(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""
        self._check("set", path)
        stored = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
        self._collections.setdefault(path, {})[doc_id] = stored

    async def update(self, path: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            EntityNotFound: If the document does not exist.
        """
        self._check("update", path)
        document = self._collections.get(path, {}).get(doc_id)
        if document is None:
            raise EntityNotFound(path.rsplit("/", 1)[-1], doc_id)
        for key, value in copy.deepcopy(patch).items():
            if key != "id":
                document[key] = value

    async def delete(self, path: str, doc_id: str) -> None:
        """Delete a document if present."""
        self._check("delete", path)
        self._collections.get(path, {}).pop(doc_id, None)

    def _require_index(self, query: Query) -> None:
        first = query.order_by[0].field
        filter_fields = frozenset(p.field for p in query.predicates if p.field != first)
        filter_fields |= {o.field for o in query.order_by[1:]}
        if not self.indexes.covers(query.collection, filter_fields, first):
            raise MissingIndexError(query.collection, tuple(sorted(filter_fields | {first})))
