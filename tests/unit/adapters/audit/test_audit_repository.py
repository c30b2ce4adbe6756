"""Unit tests for AuditRepository."""

from __future__ import annotations

from datetime import timedelta

import pytest

from workassign.adapters.audit import (
    AuditAction,
    AuditEntityType,
    AuditRecorder,
    AuditRepository,
)
from workassign.adapters.store import InMemoryDocumentStore
from workassign.core.domain_types import SessionUser, UserRole
from workassign.core.exceptions import EntityNotFound, MissingIndexError, PermissionDenied
from tests.fixtures.domain_objects import (
    NOW,
    OTHER_ORG_ID,
    FixedClock,
    make_session,
    make_user,
)


@pytest.fixture
async def history(
    recorder: AuditRecorder, clock: FixedClock, admin: SessionUser, manager: SessionUser
) -> None:
    """Record four entries one minute apart."""
    await recorder.record(manager, AuditAction.TASK_CREATED, AuditEntityType.TASK, "t1")
    clock.advance(minutes=1)
    await recorder.record(manager, AuditAction.TASK_UPDATED, AuditEntityType.TASK, "t1")
    clock.advance(minutes=1)
    await recorder.record(admin, AuditAction.TEAM_CREATED, AuditEntityType.TEAM, "team-1")
    clock.advance(minutes=1)
    await recorder.record(admin, AuditAction.USER_ROLE_CHANGED, AuditEntityType.USER, "e1")


@pytest.mark.usefixtures("history")
class TestAuditRepository:
    """Tests for AuditRepository."""

    async def test_lists_newest_first(
        self, audit_repo: AuditRepository, admin: SessionUser
    ) -> None:
        """Test default ordering."""
        entries = await audit_repo.list(admin)

        assert [e.action_type for e in entries] == [
            AuditAction.USER_ROLE_CHANGED,
            AuditAction.TEAM_CREATED,
            AuditAction.TASK_UPDATED,
            AuditAction.TASK_CREATED,
        ]
        assert entries[0].created_at == NOW + timedelta(minutes=3)

    async def test_pagination(self, audit_repo: AuditRepository, admin: SessionUser) -> None:
        """Test that start_after continues after the previous page."""
        first = await audit_repo.list(admin, limit=2)
        second = await audit_repo.list(admin, limit=2, start_after=first[-1].id)

        assert [e.action_type for e in first + second] == [
            AuditAction.USER_ROLE_CHANGED,
            AuditAction.TEAM_CREATED,
            AuditAction.TASK_UPDATED,
            AuditAction.TASK_CREATED,
        ]

    async def test_filters(self, audit_repo: AuditRepository, admin: SessionUser) -> None:
        """Test filtering by entity and actor."""
        by_type = await audit_repo.list(admin, entity_type="task")
        by_entity = await audit_repo.list(admin, entity_id="team-1")
        by_actor = await audit_repo.list(admin, actor_id="m1")

        assert [e.action_type for e in by_type] == [
            AuditAction.TASK_UPDATED,
            AuditAction.TASK_CREATED,
        ]
        assert [e.entity_id for e in by_entity] == ["team-1"]
        assert {e.actor_id for e in by_actor} == {"m1"}

    async def test_date_range(self, audit_repo: AuditRepository, admin: SessionUser) -> None:
        """Test inclusive createdAt bounds."""
        entries = await audit_repo.list(
            admin,
            start_date=NOW + timedelta(minutes=1),
            end_date=NOW + timedelta(minutes=2),
        )

        assert [e.action_type for e in entries] == [
            AuditAction.TEAM_CREATED,
            AuditAction.TASK_UPDATED,
        ]

    async def test_missing_index_without_fallback(
        self, memory_store: InMemoryDocumentStore, admin: SessionUser
    ) -> None:
        """Test that a filtered listing needs an index when fallback is off."""
        repo = AuditRepository(memory_store, client_sort_fallback=False)

        with pytest.raises(MissingIndexError):
            await repo.list(admin, entity_type=AuditEntityType.TASK)

    @pytest.mark.parametrize("role", [UserRole.EMPLOYEE, UserRole.MANAGER])
    async def test_non_admins_are_denied(
        self, audit_repo: AuditRepository, role: UserRole
    ) -> None:
        """Test that only admins read the audit log."""
        actor = make_session(make_user("someone", role))

        with pytest.raises(PermissionDenied):
            await audit_repo.list(actor)
        with pytest.raises(PermissionDenied):
            await audit_repo.get(actor, "anything")

    async def test_get(self, audit_repo: AuditRepository, admin: SessionUser) -> None:
        """Test reading a single entry."""
        [latest] = await audit_repo.list(admin, limit=1)

        entry = await audit_repo.get(admin, latest.id)

        assert entry == latest

    async def test_other_organizations_are_invisible(
        self, audit_repo: AuditRepository, admin: SessionUser
    ) -> None:
        """Test that entries never cross organizations."""
        [latest] = await audit_repo.list(admin, limit=1)
        outsider = make_session(make_user("admin2", UserRole.ADMIN, org_id=OTHER_ORG_ID))

        assert await audit_repo.list(outsider) == []
        with pytest.raises(EntityNotFound):
            await audit_repo.get(outsider, latest.id)
