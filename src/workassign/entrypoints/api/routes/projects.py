"""Project API routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from workassign.core.commands import CreateProjectCommand, UpdateProjectCommand
from workassign.core.domain_types import Project, ProjectStatus
from workassign.entrypoints.api.deps import get_project_service
from workassign.entrypoints.api.middleware.auth import CurrentUser
from workassign.services import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])

ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


class ProjectListResponse(BaseModel):
    """Response for listing projects."""

    projects: list[Project]
    total: int


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    actor: CurrentUser,
    service: ProjectServiceDep,
    manager_id: str | None = None,
    team_id: str | None = None,
    status_filter: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    member_id: str | None = None,
) -> ProjectListResponse:
    """List the projects the caller may see, sorted by name.

    manager_id and member_id cannot be combined.
    """
    projects = await service.list(actor, manager_id, team_id, status_filter, member_id)
    return ProjectListResponse(projects=projects, total=len(projects))


@router.post("/", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: CreateProjectCommand,
    actor: CurrentUser,
    service: ProjectServiceDep,
) -> Project:
    """Create a new project.

    Requires manager role or higher.
    """
    return await service.create(actor, body)


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    actor: CurrentUser,
    service: ProjectServiceDep,
) -> Project:
    """Get a project by ID."""
    return await service.get(actor, project_id)


@router.patch("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    body: dict[str, Any],
    actor: CurrentUser,
    service: ProjectServiceDep,
) -> Project:
    """Update a project. Managers of the project or admins only."""
    command = UpdateProjectCommand.model_validate({**body, "projectId": project_id})
    return await service.update(actor, command)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    actor: CurrentUser,
    service: ProjectServiceDep,
) -> Response:
    """Delete a project.

    Requires admin role.
    """
    await service.delete(actor, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
