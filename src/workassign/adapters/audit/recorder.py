"""Best-effort audit recording for mutations."""

from __future__ import annotations

from collections import deque
from typing import Any

import structlog

from workassign.adapters.audit.diff import Snapshot, compute_changes
from workassign.adapters.audit.types import AuditAction, AuditEntityType, AuditLogCreate
from workassign.adapters.store.query import Collection
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.domain_types import SessionUser
from workassign.core.exceptions import AuditWriteFailure
from workassign.core.interfaces import Clock, DocumentStore, ObservabilitySink, SystemClock

logger = structlog.get_logger()

# Failures a LoggingSink keeps for inspection
MAX_KEPT_FAILURES = 100


class LoggingSink:
    """Observability sink that emits audit failures as log events."""

    def __init__(self, max_kept: int = MAX_KEPT_FAILURES) -> None:
        """Initialize the sink.

        Args:
            max_kept: How many recent failures to keep; older ones are
                only in the log.
        """
        self.failures: deque[AuditWriteFailure] = deque(maxlen=max_kept)

    def report(self, failure: AuditWriteFailure) -> None:
        """Log a failure and keep the most recent ones for inspection."""
        self.failures.append(failure)
        logger.error(
            "audit_failure_reported",
            action_type=failure.action_type,
            entity_id=failure.entity_id,
            error=str(failure.cause),
        )


class AuditRecorder:
    """Writes append-only audit entries attributed to the acting user.

    Recording never fails the mutation it describes: store errors are
    logged and handed to the observability sink as AuditWriteFailure.
    """

    def __init__(
        self,
        store: DocumentStore,
        sink: ObservabilitySink | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            store: Document store the audit collection lives in.
            sink: Receives write failures.
            clock: Time source for createdAt.
        """
        self.store = store
        self.sink = sink or LoggingSink()
        self.clock = clock or SystemClock()

    async def record(
        self,
        actor: SessionUser,
        action_type: AuditAction | str,
        entity_type: AuditEntityType | str,
        entity_id: str,
        entity_name: str | None = None,
        before: Snapshot = None,
        after: Snapshot = None,
    ) -> None:
        """Record a mutation.

        Args:
            actor: User who performed the mutation.
            action_type: One of the AuditAction values.
            entity_type: Kind of entity mutated.
            entity_id: Id of the mutated entity.
            entity_name: Display name, when available.
            before: Snapshot before the mutation (None for creations).
            after: Snapshot after the mutation (None for deletions).

        Raises:
            ValueError: If action_type or entity_type is not a known value.
                This is a programming error and is raised before any write.
        """
        action = AuditAction(action_type)
        kind = AuditEntityType(entity_type)
        changes = compute_changes(before, after)

        entry = AuditLogCreate(
            actor_id=actor.id,
            actor_email=actor.email,
            action_type=action,
            entity_type=kind,
            entity_id=entity_id,
            entity_name=entity_name or None,
            changes=changes or None,
        )

        try:
            scoped = ScopedStore(self.store, actor, self.clock)
            await scoped.write(
                Collection.AUDIT_LOGS, scoped.new_id(), self._document(entry), create=True
            )
        except Exception as e:
            logger.error(
                "audit_write_failed",
                action_type=action.value,
                entity_type=kind.value,
                entity_id=entity_id,
                actor_id=actor.id,
                error=str(e),
            )
            self._report(AuditWriteFailure(action.value, entity_id, e))
            return

        logger.debug(
            "audit_recorded",
            action_type=action.value,
            entity_id=entity_id,
            changed_fields=sorted(changes),
        )

    def _document(self, entry: AuditLogCreate) -> dict[str, Any]:
        # None is meaningful inside changes, so only drop top-level Nones.
        data = entry.model_dump(by_alias=True)
        return {k: v for k, v in data.items() if v is not None}

    def _report(self, failure: AuditWriteFailure) -> None:
        try:
            self.sink.report(failure)
        except Exception as e:
            logger.error("audit_sink_failed", entity_id=failure.entity_id, error=str(e))
