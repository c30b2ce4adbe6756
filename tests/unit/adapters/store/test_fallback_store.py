"""Unit tests for FallbackDocumentStore."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from workassign.adapters.store import FallbackDocumentStore, InMemoryDocumentStore, Query
from workassign.core.exceptions import EntityNotFound, TransportUnavailable

PATH = "orgs/org-acme/tasks"


class TestFallbackDocumentStore:
    """Tests for FallbackDocumentStore."""

    @pytest.fixture
    def primary(self) -> InMemoryDocumentStore:
        """Return the primary store."""
        return InMemoryDocumentStore()

    @pytest.fixture
    def fallback(self) -> InMemoryDocumentStore:
        """Return the fallback store."""
        return InMemoryDocumentStore()

    @pytest.fixture
    def store(
        self, primary: InMemoryDocumentStore, fallback: InMemoryDocumentStore
    ) -> FallbackDocumentStore:
        """Return the combined store."""
        return FallbackDocumentStore(primary, fallback)

    async def test_primary_serves_when_available(
        self,
        store: FallbackDocumentStore,
        primary: InMemoryDocumentStore,
        fallback: InMemoryDocumentStore,
    ) -> None:
        """Test that the fallback is untouched while the primary works."""
        await store.set(PATH, "t1", {"title": "Ship"})

        assert await primary.get(PATH, "t1") is not None
        assert not fallback.calls

    async def test_unavailable_primary_falls_back(
        self,
        store: FallbackDocumentStore,
        primary: InMemoryDocumentStore,
        fallback: InMemoryDocumentStore,
    ) -> None:
        """Test that TransportUnavailable routes the call to the fallback."""
        await fallback.set(PATH, "t1", {"title": "Ship"})
        primary.available = False

        assert await store.get(PATH, "t1") == {"title": "Ship", "id": "t1"}
        assert await store.list(PATH, Query(collection="tasks")) == [{"title": "Ship", "id": "t1"}]

    async def test_both_unavailable_is_retryable(
        self,
        store: FallbackDocumentStore,
        primary: InMemoryDocumentStore,
        fallback: InMemoryDocumentStore,
    ) -> None:
        """Test the error surfaced when neither transport answers."""
        primary.available = False
        fallback.available = False

        with pytest.raises(TransportUnavailable) as exc_info:
            await store.update(PATH, "t1", {"title": "x"})

        assert exc_info.value.retryable is True
        assert "try again" in str(exc_info.value)

    async def test_domain_errors_do_not_fall_back(
        self, store: FallbackDocumentStore, fallback: InMemoryDocumentStore
    ) -> None:
        """Test that only transport failures trigger the fallback."""
        with pytest.raises(EntityNotFound):
            await store.update(PATH, "missing", {"title": "x"})

        assert not fallback.calls

    async def test_cancellation_propagates(self, fallback: InMemoryDocumentStore) -> None:
        """Test that a cancelled primary call is not retried."""
        primary = AsyncMock()
        primary.delete.side_effect = asyncio.CancelledError()
        store = FallbackDocumentStore(primary, fallback)

        with pytest.raises(asyncio.CancelledError):
            await store.delete(PATH, "t1")

        assert not fallback.calls

    def test_ids_come_from_primary(self, fallback: InMemoryDocumentStore) -> None:
        """Test id generation delegation."""
        primary = AsyncMock()
        primary.new_id = lambda: "fixed-id"

        assert FallbackDocumentStore(primary, fallback).new_id() == "fixed-id"
