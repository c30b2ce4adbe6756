"""Unit tests for ScopedStore."""

from __future__ import annotations

import pytest

from workassign.adapters.store import (
    Collection,
    InMemoryDocumentStore,
    QueryBuilder,
    ScopedStore,
    org_path,
)
from workassign.core.domain_types import SessionUser
from workassign.core.exceptions import AppendOnlyViolation, EntityNotFound, TenantIsolationViolation
from tests.fixtures.domain_objects import NOW, ORG_ID, OTHER_ORG_ID, FixedClock


class TestOrgPath:
    """Tests for org_path."""

    def test_every_collection_is_org_prefixed(self) -> None:
        """Test that all paths start with the organization."""
        for collection in Collection:
            parent = "t1" if collection == Collection.COMMENTS else None
            assert org_path(ORG_ID, collection, parent).startswith(f"orgs/{ORG_ID}/")

    def test_comments_live_under_their_task(self) -> None:
        """Test the comment sub-collection path."""
        assert org_path(ORG_ID, Collection.COMMENTS, "t1") == f"orgs/{ORG_ID}/tasks/t1/comments"

    def test_comments_need_a_task(self) -> None:
        """Test that comments cannot be addressed without a task id."""
        with pytest.raises(ValueError):
            org_path(ORG_ID, Collection.COMMENTS)

    @pytest.mark.parametrize("org_id", ["", "a/b", "org-acme/tasks/x"])
    def test_malformed_org_id_is_fatal(self, org_id: str) -> None:
        """Test that ids able to escape the prefix are rejected."""
        with pytest.raises(TenantIsolationViolation):
            org_path(org_id, Collection.TASKS)


class TestScopedStore:
    """Tests for ScopedStore."""

    @pytest.fixture
    def scoped(
        self, memory_store: InMemoryDocumentStore, admin: SessionUser, clock: FixedClock
    ) -> ScopedStore:
        """Return a store scoped to the admin's organization."""
        return ScopedStore(memory_store, admin, clock)

    async def test_create_stamps_fields(
        self, scoped: ScopedStore, memory_store: InMemoryDocumentStore
    ) -> None:
        """Test that creation stamps org, timestamps and creator."""
        await scoped.write(Collection.TASKS, "t1", {"title": "Ship"}, create=True)

        stored = await memory_store.get(f"orgs/{ORG_ID}/tasks", "t1")
        assert stored == {
            "id": "t1",
            "title": "Ship",
            "orgId": ORG_ID,
            "createdAt": NOW,
            "updatedAt": NOW,
            "createdBy": "admin1",
        }

    async def test_update_stamps_updated_at(
        self, scoped: ScopedStore, clock: FixedClock
    ) -> None:
        """Test that updates refresh updatedAt only."""
        await scoped.write(Collection.TASKS, "t1", {"title": "Ship"}, create=True)
        later = clock.advance(hours=1)

        written = await scoped.write(Collection.TASKS, "t1", {"title": "Ship it"})
        stored = await scoped.read(Collection.TASKS, "t1")

        assert written == {"title": "Ship it", "updatedAt": later}
        assert stored is not None
        assert stored["createdAt"] == NOW
        assert stored["updatedAt"] == later

    async def test_foreign_org_patch_is_fatal(
        self, scoped: ScopedStore, memory_store: InMemoryDocumentStore
    ) -> None:
        """Test that a patch naming another organization is never written."""
        with pytest.raises(TenantIsolationViolation):
            await scoped.write(
                Collection.TASKS, "t1", {"title": "x", "orgId": OTHER_ORG_ID}, create=True
            )

        assert not memory_store.calls

    async def test_foreign_document_read_is_fatal(
        self, scoped: ScopedStore, memory_store: InMemoryDocumentStore
    ) -> None:
        """Test that a document carrying another orgId is refused."""
        await memory_store.set(f"orgs/{ORG_ID}/tasks", "t1", {"orgId": OTHER_ORG_ID})

        with pytest.raises(TenantIsolationViolation):
            await scoped.read(Collection.TASKS, "t1")

    async def test_other_org_ids_do_not_resolve(
        self, scoped: ScopedStore, memory_store: InMemoryDocumentStore
    ) -> None:
        """Test that an id from another organization reads as missing."""
        await memory_store.set(f"orgs/{OTHER_ORG_ID}/tasks", "t9", {"orgId": OTHER_ORG_ID})

        assert await scoped.read(Collection.TASKS, "t9") is None
        with pytest.raises(EntityNotFound):
            await scoped.read_required(Collection.TASKS, "t9", entity_type="task")

    async def test_document_id_with_slash_is_fatal(self, scoped: ScopedStore) -> None:
        """Test that ids cannot walk out of the collection."""
        with pytest.raises(TenantIsolationViolation):
            await scoped.read(Collection.TASKS, f"../../{OTHER_ORG_ID}/tasks/t1")

    async def test_audit_log_is_append_only(self, scoped: ScopedStore) -> None:
        """Test that audit entries can be created but never changed or removed."""
        written = await scoped.write(Collection.AUDIT_LOGS, "a1", {"actorId": "x"}, create=True)

        assert "updatedAt" not in written
        assert "createdBy" not in written
        with pytest.raises(AppendOnlyViolation):
            await scoped.write(Collection.AUDIT_LOGS, "a1", {"actorId": "y"})
        with pytest.raises(AppendOnlyViolation):
            await scoped.delete(Collection.AUDIT_LOGS, "a1")
        with pytest.raises(AppendOnlyViolation):
            await scoped.restore(Collection.AUDIT_LOGS, "a1", {"actorId": "y"})

    async def test_list_checks_query_collection(self, scoped: ScopedStore) -> None:
        """Test that a query cannot be run against another collection."""
        query = QueryBuilder(Collection.TEAMS).compose()

        with pytest.raises(ValueError):
            await scoped.list(Collection.TASKS, query)

    async def test_list_applies_client_order(self, scoped: ScopedStore) -> None:
        """Test that team listings come back sorted by name."""
        await scoped.write(Collection.TEAMS, "t1", {"name": "sales"}, create=True)
        await scoped.write(Collection.TEAMS, "t2", {"name": "Platform"}, create=True)

        documents = await scoped.list(Collection.TEAMS, QueryBuilder(Collection.TEAMS).compose())

        assert [d["name"] for d in documents] == ["Platform", "sales"]

    async def test_array_helpers_report_changes(self, scoped: ScopedStore) -> None:
        """Test union and removal semantics."""
        await scoped.write(Collection.USERS, "e1", {"teamIds": ["team-1"]}, create=True)

        assert await scoped.add_to_array(Collection.USERS, "e1", "teamIds", ["team-2"])
        assert not await scoped.add_to_array(Collection.USERS, "e1", "teamIds", ["team-2"])
        assert await scoped.remove_from_array(Collection.USERS, "e1", "teamIds", ["team-1"])
        assert not await scoped.remove_from_array(Collection.USERS, "e1", "teamIds", ["team-1"])

        stored = await scoped.read(Collection.USERS, "e1")
        assert stored is not None
        assert stored["teamIds"] == ["team-2"]

    async def test_replace_in_array_keeps_position(self, scoped: ScopedStore) -> None:
        """Test in-place replacement of one id by another."""
        await scoped.write(
            Collection.TEAMS,
            "t1",
            {"name": "Platform", "memberIds": ["e1", "inv", "e2"]},
            create=True,
        )

        assert await scoped.replace_in_array(Collection.TEAMS, "t1", "memberIds", "inv", "u9")
        assert not await scoped.replace_in_array(Collection.TEAMS, "t1", "memberIds", "inv", "u9")

        stored = await scoped.read(Collection.TEAMS, "t1")
        assert stored is not None
        assert stored["memberIds"] == ["e1", "u9", "e2"]

    async def test_replace_in_array_drops_duplicates(self, scoped: ScopedStore) -> None:
        """Test that replacing with an id already present leaves it once."""
        await scoped.write(
            Collection.TEAMS, "t1", {"name": "Platform", "managerIds": ["u9", "inv"]}, create=True
        )

        await scoped.replace_in_array(Collection.TEAMS, "t1", "managerIds", "inv", "u9")

        stored = await scoped.read(Collection.TEAMS, "t1")
        assert stored is not None
        assert stored["managerIds"] == ["u9"]

    async def test_restore_puts_back_exact_document(
        self, scoped: ScopedStore, clock: FixedClock
    ) -> None:
        """Test that restore applies no stamps."""
        await scoped.write(Collection.TEAMS, "t1", {"name": "Platform"}, create=True)
        previous = await scoped.read(Collection.TEAMS, "t1")
        assert previous is not None
        clock.advance(hours=1)
        await scoped.write(Collection.TEAMS, "t1", {"name": "Renamed"})

        await scoped.restore(Collection.TEAMS, "t1", previous)

        assert await scoped.read(Collection.TEAMS, "t1") == previous

    async def test_comments_are_scoped_to_their_task(
        self, scoped: ScopedStore, memory_store: InMemoryDocumentStore
    ) -> None:
        """Test comment addressing through the parent task."""
        await scoped.write(
            Collection.COMMENTS, "c1", {"content": "hi"}, create=True, parent_id="t1"
        )

        assert await memory_store.get(f"orgs/{ORG_ID}/tasks/t1/comments", "c1") is not None
        assert await scoped.read(Collection.COMMENTS, "c1", parent_id="t2") is None
