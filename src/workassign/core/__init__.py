"""Core domain - Pure business logic with no transport dependencies."""

from .domain_types import (
    AttachmentMeta,
    ChecklistItem,
    Comment,
    IdentityInfo,
    Organization,
    OrganizationSettings,
    ProfileInfo,
    Project,
    ProjectStatus,
    SessionUser,
    Task,
    TaskPriority,
    TaskStatus,
    Team,
    User,
    UserRole,
    UserStatus,
)
from .exceptions import (
    AppendOnlyViolation,
    AuditWriteFailure,
    EntityNotFound,
    InvalidRequest,
    InvalidTransition,
    MissingIndexError,
    PermissionDenied,
    QueryCompositionError,
    StoreRequestError,
    TenantIsolationViolation,
    TransportUnavailable,
    WorkAssignError,
)
from .interfaces import Clock, DocumentStore, IdentityProvider, ObservabilitySink, SystemClock
from .workflow import TRANSITIONS, TaskWorkflow

__all__ = [
    # Domain types
    "AttachmentMeta",
    "ChecklistItem",
    "Comment",
    "IdentityInfo",
    "Organization",
    "OrganizationSettings",
    "ProfileInfo",
    "Project",
    "ProjectStatus",
    "SessionUser",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Team",
    "User",
    "UserRole",
    "UserStatus",
    # Exceptions
    "WorkAssignError",
    "PermissionDenied",
    "InvalidTransition",
    "TenantIsolationViolation",
    "TransportUnavailable",
    "AuditWriteFailure",
    "QueryCompositionError",
    "MissingIndexError",
    "EntityNotFound",
    "InvalidRequest",
    "AppendOnlyViolation",
    "StoreRequestError",
    # Interfaces
    "Clock",
    "DocumentStore",
    "IdentityProvider",
    "ObservabilitySink",
    "SystemClock",
    # Workflow
    "TRANSITIONS",
    "TaskWorkflow",
]
