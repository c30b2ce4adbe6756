"""User management routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from workassign.core.commands import ChangeRoleCommand, CreateUserCommand, UpdateProfileCommand
from workassign.core.domain_types import User, UserRole, UserStatus
from workassign.entrypoints.api.deps import get_user_service
from workassign.entrypoints.api.middleware.auth import CurrentUser
from workassign.services import UserService

router = APIRouter(prefix="/users", tags=["users"])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


class UserListResponse(BaseModel):
    """Response for listing users."""

    users: list[User]
    total: int


class RoleChangeRequest(BaseModel):
    """Request to change a user's role."""

    role: UserRole


@router.get("/", response_model=UserListResponse)
async def list_users(
    actor: CurrentUser,
    service: UserServiceDep,
    role: UserRole | None = None,
    status_filter: Annotated[UserStatus | None, Query(alias="status")] = None,
    team_id: str | None = None,
) -> UserListResponse:
    """List users of the organization, ordered by display name."""
    users = await service.list(actor, role, status_filter, team_id)
    return UserListResponse(users=users, total=len(users))


@router.get("/me", response_model=User)
async def get_current_profile(actor: CurrentUser) -> User:
    """Get the caller's own profile."""
    return actor.profile


@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: CreateUserCommand,
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Invite a user. The account stays pending until its first sign-in.

    Requires admin role.
    """
    return await service.create(actor, body)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Get a user by ID."""
    return await service.get(actor, user_id)


@router.patch("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    body: dict[str, Any],
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Update a profile's display name or avatar."""
    command = UpdateProfileCommand.model_validate({**body, "userId": user_id})
    return await service.update_profile(actor, command)


@router.post("/{user_id}/role", response_model=User)
async def change_user_role(
    user_id: str,
    body: RoleChangeRequest,
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Change a user's role.

    Requires admin role; admins cannot change their own role.
    """
    return await service.change_role(actor, ChangeRoleCommand(user_id=user_id, role=body.role))


@router.post("/{user_id}/disable", response_model=User)
async def disable_user(
    user_id: str,
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Disable an account and end its sessions."""
    return await service.disable(actor, user_id)


@router.post("/{user_id}/activate", response_model=User)
async def activate_user(
    user_id: str,
    actor: CurrentUser,
    service: UserServiceDep,
) -> User:
    """Re-enable an account."""
    return await service.activate(actor, user_id)
