"""Audit log API routes."""

import csv
from datetime import datetime
from io import StringIO
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from workassign.adapters.audit import AuditEntityType, AuditLogEntry, AuditRepository
from workassign.entrypoints.api.deps import get_audit_repo
from workassign.entrypoints.api.middleware.auth import CurrentUser

router = APIRouter(prefix="/audit-logs", tags=["audit"])

# Annotated type for dependency injection
AuditRepoDep = Annotated[AuditRepository, Depends(get_audit_repo)]

EXPORT_LIMIT = 10000


class AuditLogListResponse(BaseModel):
    """Page of audit log entries, newest first."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[AuditLogEntry]
    total: int
    limit: int
    next_start_after: str | None = None


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    actor: CurrentUser,
    audit_repo: AuditRepoDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    start_after: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    entity_type: AuditEntityType | None = None,
    entity_id: str | None = None,
    actor_id: str | None = None,
) -> AuditLogListResponse:
    """List audit logs with filtering and cursor pagination.

    Args:
        actor: Authenticated caller; must be an admin.
        audit_repo: Audit repository dependency.
        limit: Number of items per page.
        start_after: Id of the last entry of the previous page.
        start_date: Filter entries at or after this date.
        end_date: Filter entries at or before this date.
        entity_type: Filter by entity type.
        entity_id: Filter by entity id.
        actor_id: Filter by acting user.

    Returns:
        Page of audit log entries.
    """
    entries = await audit_repo.list(
        actor,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        start_after=start_after,
    )
    return AuditLogListResponse(
        items=entries,
        total=len(entries),
        limit=limit,
        next_start_after=entries[-1].id if len(entries) == limit else None,
    )


@router.get("/export")
async def export_audit_logs(
    actor: CurrentUser,
    audit_repo: AuditRepoDep,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    entity_type: AuditEntityType | None = None,
    entity_id: str | None = None,
    actor_id: str | None = None,
) -> StreamingResponse:
    """Export audit logs as CSV.

    Returns:
        CSV file as streaming response.
    """
    entries = await audit_repo.list(
        actor,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        start_date=start_date,
        end_date=end_date,
        limit=EXPORT_LIMIT,
    )

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(
        [
            "Timestamp",
            "Actor Email",
            "Action",
            "Entity Type",
            "Entity Id",
            "Entity Name",
            "Changed Fields",
        ]
    )

    for entry in entries:
        writer.writerow(
            [
                entry.created_at.isoformat(),
                entry.actor_email,
                entry.action_type.value,
                entry.entity_type.value,
                entry.entity_id,
                entry.entity_name or "",
                ";".join(sorted(entry.changes or {})),
            ]
        )

    output.seek(0)

    filename = f"audit-logs-{datetime.now().strftime('%Y%m%d')}.csv"

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{entry_id}", response_model=AuditLogEntry)
async def get_audit_log(
    entry_id: str,
    actor: CurrentUser,
    audit_repo: AuditRepoDep,
) -> AuditLogEntry:
    """Get a single audit log entry."""
    return await audit_repo.get(actor, entry_id)
