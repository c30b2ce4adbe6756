"""Store, recorder and service fixtures for testing."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from workassign.adapters.audit import AuditRecorder, AuditRepository
from workassign.adapters.store import InMemoryDocumentStore, Query, org_path
from workassign.adapters.store.query import Collection
from workassign.core.domain_types import SessionUser
from workassign.services import ServiceContext
from tests.fixtures.domain_objects import ORG_ID, FixedClock

__all__ = [
    "audit_entries",
    "audit_repo",
    "context",
    "memory_store",
    "mock_sink",
    "recorder",
    "seed",
    "seed_actors",
]


async def seed(
    store: InMemoryDocumentStore,
    collection: Collection,
    *models: Any,
    parent_id: str | None = None,
) -> None:
    """Write models straight into the store, bypassing authorization."""
    for model in models:
        path = org_path(model.org_id, collection, parent_id)
        await store.set(path, model.id, model.to_document())


async def seed_actors(store: InMemoryDocumentStore, *actors: SessionUser) -> None:
    """Store the profiles of the given actors."""
    await seed(store, Collection.USERS, *(a.profile for a in actors))


async def audit_entries(
    store: InMemoryDocumentStore, org_id: str = ORG_ID
) -> list[dict[str, Any]]:
    """Return the stored audit entries of an organization, oldest first."""
    documents = await store.list(
        org_path(org_id, Collection.AUDIT_LOGS), Query(collection=Collection.AUDIT_LOGS.value)
    )
    return sorted(documents, key=lambda d: d["createdAt"])


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Return an empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def mock_sink() -> MagicMock:
    """Return a mock observability sink."""
    return MagicMock()


@pytest.fixture
def recorder(
    memory_store: InMemoryDocumentStore, mock_sink: MagicMock, clock: FixedClock
) -> AuditRecorder:
    """Return an audit recorder writing to the memory store."""
    return AuditRecorder(memory_store, mock_sink, clock)


@pytest.fixture
def context(
    memory_store: InMemoryDocumentStore, recorder: AuditRecorder, clock: FixedClock
) -> ServiceContext:
    """Return a service context over the memory store."""
    return ServiceContext(store=memory_store, recorder=recorder, clock=clock)


@pytest.fixture
def audit_repo(memory_store: InMemoryDocumentStore) -> AuditRepository:
    """Return an audit repository over the memory store."""
    return AuditRepository(memory_store)
