"""Audit logging adapters."""

from workassign.adapters.audit.diff import compute_changes
from workassign.adapters.audit.recorder import AuditRecorder, LoggingSink
from workassign.adapters.audit.repository import AuditRepository
from workassign.adapters.audit.types import (
    AuditAction,
    AuditEntityType,
    AuditLogCreate,
    AuditLogEntry,
    FieldChange,
)

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLogCreate",
    "AuditLogEntry",
    "AuditRecorder",
    "AuditRepository",
    "FieldChange",
    "LoggingSink",
    "compute_changes",
]
