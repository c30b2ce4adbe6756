"""Typed mutation commands.

Each command enumerates exactly the fields its mutation may touch, so an
update can never overwrite unrelated fields and the audit diff is computed
from typed before/after pairs. Task status is deliberately absent from
UpdateTaskCommand; it only changes through UpdateTaskStatusCommand.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from workassign.core.domain_types import (
    AttachmentMeta,
    ChecklistItem,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    UserRole,
)


class Command(BaseModel):
    """Base for mutation commands."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # Fields that identify the target rather than describe the change.
    key_fields: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller, by attribute name.

        An explicitly provided None means "clear the field"; omitted
        fields are left out entirely.
        """
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in self.key_fields
        }


class CreateTaskCommand(Command):
    """Create a task. New tasks always start in backlog."""

    title: str = Field(min_length=1)
    description: str | None = None
    project_id: str | None = None
    team_id: str | None = None
    parent_task_id: str | None = None
    assignee_ids: list[str] = []
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    tags: list[str] = []


class UpdateTaskCommand(Command):
    """Edit task details."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"task_id"})

    task_id: str
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    assignee_ids: list[str] | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None
    checklist_items: list[ChecklistItem] | None = None
    attachments: list[AttachmentMeta] | None = None


class UpdateTaskStatusCommand(Command):
    """Transition request: ``{taskId, requestedStatus}``."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"task_id"})

    task_id: str
    requested_status: TaskStatus


class CreateCommentCommand(Command):
    """Add a comment to a task."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"task_id"})

    task_id: str
    content: str = Field(min_length=1)
    mentions: list[str] | None = None

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("content must not be blank")
        return stripped


class CreateTeamCommand(Command):
    """Create a team with its managers and members."""

    name: str = Field(min_length=1)
    description: str | None = None
    manager_ids: list[str] = []
    member_ids: list[str] = []


class UpdateTeamCommand(Command):
    """Edit a team."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"team_id"})

    team_id: str
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    manager_ids: list[str] | None = None
    member_ids: list[str] | None = None


class CreateProjectCommand(Command):
    """Create a project with its managers and members."""

    name: str = Field(min_length=1)
    description: str | None = None
    team_id: str | None = None
    manager_ids: list[str] = []
    member_ids: list[str] = []
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: datetime | None = None
    end_date: datetime | None = None


class UpdateProjectCommand(Command):
    """Edit a project."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"project_id"})

    project_id: str
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    team_id: str | None = None
    manager_ids: list[str] | None = None
    member_ids: list[str] | None = None
    status: ProjectStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class CreateUserCommand(Command):
    """Invite a user into the organization. The account starts pending."""

    email: str = Field(min_length=3)
    display_name: str = Field(min_length=1)
    role: UserRole = UserRole.EMPLOYEE

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if "@" not in normalized:
            raise ValueError("email must contain '@'")
        return normalized


class UpdateProfileCommand(Command):
    """Edit non-privileged profile fields."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"user_id"})

    user_id: str
    display_name: str | None = Field(default=None, min_length=1)
    avatar_url: str | None = None


class ChangeRoleCommand(Command):
    """Change a user's role."""

    key_fields: ClassVar[frozenset[str]] = frozenset({"user_id"})

    user_id: str
    role: UserRole
