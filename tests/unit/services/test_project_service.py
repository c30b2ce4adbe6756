"""Unit tests for ProjectService."""

from __future__ import annotations

import pytest

from workassign.adapters.store import InMemoryDocumentStore, org_path
from workassign.adapters.store.query import Collection
from workassign.core.commands import CreateProjectCommand, UpdateProjectCommand
from workassign.core.domain_types import Project, ProjectStatus, SessionUser
from workassign.core.exceptions import (
    InvalidRequest,
    PermissionDenied,
    QueryCompositionError,
)
from workassign.services import ProjectService, ServiceContext
from tests.fixtures.domain_objects import ORG_ID
from tests.fixtures.mocks import audit_entries, seed, seed_actors

USERS = org_path(ORG_ID, Collection.USERS)


@pytest.fixture
def service(context: ServiceContext) -> ProjectService:
    """Return a project service over the memory store."""
    return ProjectService(context)


@pytest.fixture(autouse=True)
async def stored(
    memory_store: InMemoryDocumentStore,
    admin: SessionUser,
    manager: SessionUser,
    employee: SessionUser,
) -> None:
    """Store the actors plus project-1 (managed by m1) and project-2."""
    await seed_actors(memory_store, admin, manager, employee)
    await seed(
        memory_store,
        Collection.PROJECTS,
        Project(
            id="project-1",
            org_id=ORG_ID,
            name="Website relaunch",
            team_id="team-1",
            manager_ids=["m1"],
        ),
        Project(
            id="project-2",
            org_id=ORG_ID,
            name="Billing migration",
            status=ProjectStatus.COMPLETED,
            member_ids=["e1"],
        ),
    )


class TestProjectService:
    """Tests for ProjectService."""

    async def test_manager_creates_project(
        self,
        service: ProjectService,
        memory_store: InMemoryDocumentStore,
        manager: SessionUser,
    ) -> None:
        """Test that managers may create projects and members get linked."""
        command = CreateProjectCommand(name="Mobile app", manager_ids=["m1"], member_ids=["e1"])

        project = await service.create(manager, command)

        assert project.status == ProjectStatus.ACTIVE
        assert project.created_by == "m1"
        m1 = await memory_store.get(USERS, "m1")
        e1 = await memory_store.get(USERS, "e1")
        assert m1 is not None
        assert e1 is not None
        assert m1["managedProjectIds"] == ["project-1", project.id]
        assert e1["projectIds"] == [project.id]
        [entry] = await audit_entries(memory_store)
        assert entry["actionType"] == "project_created"

    async def test_employee_cannot_create(
        self, service: ProjectService, employee: SessionUser
    ) -> None:
        """Test the minimum role for creation."""
        with pytest.raises(PermissionDenied):
            await service.create(employee, CreateProjectCommand(name="Side quest"))

    async def test_listing_filters(
        self,
        service: ProjectService,
        admin: SessionUser,
        employee: SessionUser,
    ) -> None:
        """Test the listing filters and per-entity visibility."""
        assert [p.id for p in await service.list(admin)] == ["project-2", "project-1"]
        assert [p.id for p in await service.list(admin, team_id="team-1")] == ["project-1"]
        completed = await service.list(admin, status=ProjectStatus.COMPLETED)
        assert [p.id for p in completed] == ["project-2"]
        assert [p.id for p in await service.list(admin, member_id="e1")] == ["project-2"]
        # membership comes from the actor profile, which lists no projects
        assert await service.list(employee) == []

    async def test_two_array_filters_are_rejected(
        self, service: ProjectService, admin: SessionUser
    ) -> None:
        """Test that managerId and memberId cannot be combined."""
        with pytest.raises(QueryCompositionError):
            await service.list(admin, manager_id="m1", member_id="e1")

    async def test_owning_manager_changes_status(
        self,
        service: ProjectService,
        memory_store: InMemoryDocumentStore,
        manager: SessionUser,
    ) -> None:
        """Test an edit by the managing user."""
        command = UpdateProjectCommand(project_id="project-1", status=ProjectStatus.ARCHIVED)

        project = await service.update(manager, command)

        assert project.status == ProjectStatus.ARCHIVED
        [entry] = await audit_entries(memory_store)
        assert entry["changes"] == {"status": {"before": "active", "after": "archived"}}

    async def test_status_cannot_be_cleared(
        self, service: ProjectService, admin: SessionUser
    ) -> None:
        """Test the project-specific required field."""
        with pytest.raises(InvalidRequest, match="status"):
            await service.update(admin, UpdateProjectCommand(project_id="project-1", status=None))

    async def test_unmanaged_project_is_read_only(
        self, service: ProjectService, manager: SessionUser
    ) -> None:
        """Test that managers cannot edit projects they do not manage."""
        with pytest.raises(PermissionDenied):
            await service.update(
                manager, UpdateProjectCommand(project_id="project-2", name="Billing v2")
            )

    async def test_delete_is_admin_only(
        self,
        service: ProjectService,
        memory_store: InMemoryDocumentStore,
        admin: SessionUser,
        manager: SessionUser,
    ) -> None:
        """Test deletion rights and unlinking."""
        with pytest.raises(PermissionDenied):
            await service.delete(manager, "project-1")

        await service.delete(admin, "project-1")

        m1 = await memory_store.get(USERS, "m1")
        assert m1 is not None
        assert m1["managedProjectIds"] == []
