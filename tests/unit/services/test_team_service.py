"""Unit tests for TeamService."""

from __future__ import annotations

from typing import Any

import pytest

from workassign.adapters.store import InMemoryDocumentStore, org_path
from workassign.adapters.store.query import Collection
from workassign.core.commands import CreateTeamCommand, UpdateTeamCommand
from workassign.core.domain_types import SessionUser, Team
from workassign.core.exceptions import EntityNotFound, InvalidRequest, PermissionDenied
from workassign.services import ServiceContext, TeamService
from tests.fixtures.domain_objects import ORG_ID, make_user
from tests.fixtures.mocks import audit_entries, seed, seed_actors

USERS = org_path(ORG_ID, Collection.USERS)
TEAMS = org_path(ORG_ID, Collection.TEAMS)


@pytest.fixture
def service(context: ServiceContext) -> TeamService:
    """Return a team service over the memory store."""
    return TeamService(context)


@pytest.fixture
async def people(
    memory_store: InMemoryDocumentStore,
    admin: SessionUser,
    manager: SessionUser,
    employee: SessionUser,
) -> None:
    """Store admin1, m1, e1 and a second employee e2."""
    await seed_actors(memory_store, admin, manager, employee)
    await seed(memory_store, Collection.USERS, make_user("e2"))


async def _user(store: InMemoryDocumentStore, user_id: str) -> dict[str, Any]:
    document = await store.get(USERS, user_id)
    assert document is not None
    return document


@pytest.mark.usefixtures("people")
class TestCreate:
    """Tests for TeamService.create."""

    async def test_links_managers_and_members(
        self,
        service: TeamService,
        memory_store: InMemoryDocumentStore,
        admin: SessionUser,
    ) -> None:
        """Test that every manager and member gets a back-reference."""
        command = CreateTeamCommand(name="Growth", manager_ids=["m1"], member_ids=["e1", "e2"])

        team = await service.create(admin, command)

        assert (await _user(memory_store, "m1"))["managedTeamIds"] == ["team-1", team.id]
        assert (await _user(memory_store, "e1"))["teamIds"] == ["team-1", team.id]
        assert (await _user(memory_store, "e2"))["teamIds"] == [team.id]
        [entry] = await audit_entries(memory_store)
        assert entry["actionType"] == "team_created"
        assert entry["entityName"] == "Growth"

    async def test_managers_cannot_create(
        self, service: TeamService, manager: SessionUser
    ) -> None:
        """Test that team creation is admin only."""
        with pytest.raises(PermissionDenied):
            await service.create(manager, CreateTeamCommand(name="Growth"))

    async def test_unknown_member_rolls_everything_back(
        self,
        service: TeamService,
        memory_store: InMemoryDocumentStore,
        admin: SessionUser,
    ) -> None:
        """Test that a failed back-reference leaves no trace."""
        command = CreateTeamCommand(name="Growth", manager_ids=["m1"], member_ids=["ghost"])

        with pytest.raises(EntityNotFound):
            await service.create(admin, command)

        assert await service.list(admin) == []
        assert (await _user(memory_store, "m1"))["managedTeamIds"] == ["team-1"]
        assert await audit_entries(memory_store) == []


@pytest.mark.usefixtures("people")
class TestExisting:
    """Tests for reading, editing and deleting stored teams."""

    @pytest.fixture(autouse=True)
    async def teams(self, memory_store: InMemoryDocumentStore, sample_team: Team) -> None:
        """Store team-1 (Platform) and team-2 (Analytics)."""
        await seed(
            memory_store,
            Collection.TEAMS,
            sample_team,
            Team(id="team-2", org_id=ORG_ID, name="Analytics"),
        )

    async def test_listing_is_filtered_and_sorted(
        self,
        service: TeamService,
        admin: SessionUser,
        manager: SessionUser,
        employee: SessionUser,
    ) -> None:
        """Test that listings only contain readable teams, by name."""
        assert [t.name for t in await service.list(admin)] == ["Analytics", "Platform"]
        assert [t.id for t in await service.list(manager)] == ["team-1"]
        assert [t.id for t in await service.list(employee)] == ["team-1"]
        assert [t.id for t in await service.list(admin, manager_id="m1")] == ["team-1"]

    async def test_outsider_cannot_read(self, service: TeamService, employee: SessionUser) -> None:
        """Test reading a team the employee is not part of."""
        with pytest.raises(PermissionDenied):
            await service.get(employee, "team-2")

    async def test_owning_manager_swaps_members(
        self,
        service: TeamService,
        memory_store: InMemoryDocumentStore,
        manager: SessionUser,
    ) -> None:
        """Test that replaced members are unlinked and new ones linked."""
        command = UpdateTeamCommand(team_id="team-1", member_ids=["e2"])

        team = await service.update(manager, command)

        assert team.member_ids == ["e2"]
        assert (await _user(memory_store, "e1"))["teamIds"] == []
        assert (await _user(memory_store, "e2"))["teamIds"] == ["team-1"]
        [entry] = await audit_entries(memory_store)
        assert entry["changes"] == {"memberIds": {"before": ["e1"], "after": ["e2"]}}

    async def test_other_manager_cannot_edit(
        self, service: TeamService, manager: SessionUser
    ) -> None:
        """Test that managers only edit teams they manage."""
        with pytest.raises(PermissionDenied):
            await service.update(manager, UpdateTeamCommand(team_id="team-2", name="Data"))

    async def test_required_fields_cannot_be_cleared(
        self, service: TeamService, admin: SessionUser
    ) -> None:
        """Test the required field check."""
        with pytest.raises(InvalidRequest):
            await service.update(admin, UpdateTeamCommand(team_id="team-1", name=None))

    async def test_failed_update_restores_team(
        self,
        service: TeamService,
        memory_store: InMemoryDocumentStore,
        admin: SessionUser,
    ) -> None:
        """Test that the team document is put back when relinking fails."""
        command = UpdateTeamCommand(team_id="team-1", name="Core", member_ids=["ghost"])

        with pytest.raises(EntityNotFound):
            await service.update(admin, command)

        team = await service.get(admin, "team-1")
        assert team.name == "Platform"
        assert team.member_ids == ["e1"]
        assert (await _user(memory_store, "e1"))["teamIds"] == ["team-1"]

    async def test_admin_deletes_and_unlinks(
        self,
        service: TeamService,
        memory_store: InMemoryDocumentStore,
        admin: SessionUser,
    ) -> None:
        """Test deletion removes every back-reference."""
        await service.delete(admin, "team-1")

        assert await memory_store.get(TEAMS, "team-1") is None
        assert (await _user(memory_store, "m1"))["managedTeamIds"] == []
        assert (await _user(memory_store, "e1"))["teamIds"] == []
        [entry] = await audit_entries(memory_store)
        assert entry["actionType"] == "team_deleted"

    async def test_manager_cannot_delete(
        self, service: TeamService, manager: SessionUser
    ) -> None:
        """Test that deletion is admin only, even for the owning manager."""
        with pytest.raises(PermissionDenied):
            await service.delete(manager, "team-1")
