"""Team API routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from workassign.core.commands import CreateTeamCommand, UpdateTeamCommand
from workassign.core.domain_types import Team
from workassign.entrypoints.api.deps import get_team_service
from workassign.entrypoints.api.middleware.auth import CurrentUser
from workassign.services import TeamService

router = APIRouter(prefix="/teams", tags=["teams"])

TeamServiceDep = Annotated[TeamService, Depends(get_team_service)]


class TeamListResponse(BaseModel):
    """Response for listing teams."""

    teams: list[Team]
    total: int


@router.get("/", response_model=TeamListResponse)
async def list_teams(
    actor: CurrentUser,
    service: TeamServiceDep,
    manager_id: str | None = None,
) -> TeamListResponse:
    """List the teams the caller may see, sorted by name."""
    teams = await service.list(actor, manager_id)
    return TeamListResponse(teams=teams, total=len(teams))


@router.post("/", response_model=Team, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: CreateTeamCommand,
    actor: CurrentUser,
    service: TeamServiceDep,
) -> Team:
    """Create a new team.

    Requires admin role.
    """
    return await service.create(actor, body)


@router.get("/{team_id}", response_model=Team)
async def get_team(
    team_id: str,
    actor: CurrentUser,
    service: TeamServiceDep,
) -> Team:
    """Get a team by ID."""
    return await service.get(actor, team_id)


@router.patch("/{team_id}", response_model=Team)
async def update_team(
    team_id: str,
    body: dict[str, Any],
    actor: CurrentUser,
    service: TeamServiceDep,
) -> Team:
    """Update a team. Managers of the team or admins only."""
    command = UpdateTeamCommand.model_validate({**body, "teamId": team_id})
    return await service.update(actor, command)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: str,
    actor: CurrentUser,
    service: TeamServiceDep,
) -> Response:
    """Delete a team.

    Requires admin role.
    """
    await service.delete(actor, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
