"""Audit log types."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AuditEntityType(str, Enum):
    """Kinds of entity an audit entry can describe."""

    USER = "user"
    TEAM = "team"
    PROJECT = "project"
    TASK = "task"


class AuditAction(str, Enum):
    """Closed set of audit action types."""

    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    USER_DISABLED = "user_disabled"
    USER_ROLE_CHANGED = "user_role_changed"
    TEAM_CREATED = "team_created"
    TEAM_UPDATED = "team_updated"
    TEAM_DELETED = "team_deleted"
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"


class FieldChange(BaseModel):
    """Before/after pair for one field."""

    model_config = ConfigDict(frozen=True)

    before: Any = None
    after: Any = None


class AuditLogCreate(BaseModel):
    """An audit entry about to be written."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    actor_id: str
    actor_email: str
    action_type: AuditAction
    entity_type: AuditEntityType
    entity_id: str
    entity_name: str | None = None
    changes: dict[str, FieldChange] | None = None


class AuditLogEntry(BaseModel):
    """Audit log entry read back from the store."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    org_id: str
    actor_id: str
    actor_email: str
    action_type: AuditAction
    entity_type: AuditEntityType
    entity_id: str
    entity_name: str | None = None
    changes: dict[str, FieldChange] | None = None
    created_at: datetime
