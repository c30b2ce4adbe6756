"""Domain types - Immutable Pydantic models defining core domain objects.

Every persisted entity is org-scoped. Python attributes are snake_case;
documents in the store use the camelCase aliases (``orgId``,
``assigneeIds``...), so models are always dumped ``by_alias`` at the
store boundary. All models are frozen; mutations produce new instances
through ``model_copy(update=...)``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    """User roles, lowest to highest."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Account status."""

    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    BACKLOG = "backlog"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ProjectStatus(str, Enum):
    """Project lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


def plain(value: Any) -> Any:
    """Replace enum members with their values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [plain(v) for v in value]
    return value


class DocumentModel(BaseModel):
    """Base for models persisted as store documents."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the stored shape (camelCase, no id, no unset optionals)."""
        return plain(self.model_dump(by_alias=True, exclude_none=True, exclude={"id"}))

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Any:
        """Build a model from a stored document (must include ``id``)."""
        return cls.model_validate(document)


class OrganizationSettings(DocumentModel):
    """Tenant-wide sign-up settings."""

    allowed_email_domains: list[str] = []
    default_role: UserRole = UserRole.EMPLOYEE


class Organization(DocumentModel):
    """A tenant. All other entities reference it by id."""

    id: str
    name: str
    domain: str | None = None
    settings: OrganizationSettings = OrganizationSettings()
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def allows_email(self, email: str) -> bool:
        """Check an email against the allowed domains (empty list allows all)."""
        if not self.settings.allowed_email_domains:
            return True
        domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
        return any(domain == d.lower() for d in self.settings.allowed_email_domains)


class User(DocumentModel):
    """Store-backed user profile."""

    id: str
    org_id: str
    email: str
    display_name: str
    role: UserRole = UserRole.EMPLOYEE
    status: UserStatus = UserStatus.PENDING
    managed_team_ids: list[str] = []
    managed_project_ids: list[str] = []
    team_ids: list[str] = []
    project_ids: list[str] = []
    avatar_url: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


# The store-backed half of a session user.
ProfileInfo = User


class Team(DocumentModel):
    """A group of users with managers and members."""

    id: str
    org_id: str
    name: str
    description: str | None = None
    manager_ids: list[str] = []
    member_ids: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None


class Project(DocumentModel):
    """A project, optionally owned by a team."""

    id: str
    org_id: str
    name: str
    description: str | None = None
    team_id: str | None = None
    manager_ids: list[str] = []
    member_ids: list[str] = []
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None


class ChecklistItem(DocumentModel):
    """A checklist entry on a task."""

    # Stored as itemId: the wire codec drops nested keys named id.
    id: str = Field(serialization_alias="itemId", validation_alias=AliasChoices("itemId", "id"))
    text: str
    completed: bool = False
    completed_at: datetime | None = None
    completed_by: str | None = None

    def to_document(self) -> dict[str, Any]:
        """Checklist items keep their id, stored as ``itemId``."""
        return plain(self.model_dump(by_alias=True, exclude_none=True))


class AttachmentMeta(DocumentModel):
    """Metadata of a file attached to a task. Blob storage is external."""

    # Stored as itemId: the wire codec drops nested keys named id.
    id: str = Field(serialization_alias="itemId", validation_alias=AliasChoices("itemId", "id"))
    file_name: str
    file_size: int
    mime_type: str
    storage_path: str
    uploaded_by: str
    uploaded_at: datetime

    def to_document(self) -> dict[str, Any]:
        """Attachment entries keep their id, stored as ``itemId``."""
        return plain(self.model_dump(by_alias=True, exclude_none=True))


class Task(DocumentModel):
    """A unit of work assigned to one or more users."""

    id: str
    org_id: str
    title: str
    description: str | None = None
    project_id: str | None = None
    team_id: str | None = None
    parent_task_id: str | None = None
    assignee_ids: list[str] = []
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    tags: list[str] = []
    checklist_items: list[ChecklistItem] | None = None
    attachments: list[AttachmentMeta] | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    def is_assignee(self, user_id: str) -> bool:
        """Check whether a user is assigned to this task."""
        return user_id in self.assignee_ids


class Comment(DocumentModel):
    """A comment on a task."""

    id: str
    org_id: str
    task_id: str
    content: str
    author_id: str
    mentions: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class IdentityInfo(BaseModel):
    """What the identity provider knows about the signed-in principal.

    Attributes:
        user_id: Identity provider subject; also the user document id.
        email: Verified or unverified email address.
        email_verified: Whether the provider has verified the email.
        display_name: Name from the provider profile, if any.
        org_id: Organization claim carried by the token, if any.
        issued_at: Token issue time (epoch seconds).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    org_id: str | None = None
    issued_at: int | None = None


class SessionUser(BaseModel):
    """An authenticated actor: identity merged with the stored profile.

    Assembled once when the session is established and passed explicitly
    to everything that needs the actor.
    """

    model_config = ConfigDict(frozen=True)

    identity: IdentityInfo
    profile: User

    @property
    def id(self) -> str:
        """User id."""
        return self.profile.id

    @property
    def org_id(self) -> str:
        """Organization the actor belongs to."""
        return self.profile.org_id

    @property
    def email(self) -> str:
        """Normalized profile email."""
        return self.profile.email

    @property
    def role(self) -> UserRole:
        """Actor role."""
        return self.profile.role

    @property
    def is_disabled(self) -> bool:
        """Whether the account is disabled."""
        return self.profile.status == UserStatus.DISABLED
