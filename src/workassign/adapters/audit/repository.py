"""Audit log repository."""

from datetime import datetime

import structlog

from workassign.adapters.audit.types import AuditEntityType, AuditLogEntry
from workassign.adapters.store.query import (
    Collection,
    IndexCatalog,
    Operator,
    Predicate,
    QueryBuilder,
)
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.domain_types import SessionUser
from workassign.core.exceptions import EntityNotFound
from workassign.core.interfaces import DocumentStore
from workassign.core.rbac import Action, CollectionTarget, RoleAuthorizer

logger = structlog.get_logger()

AUDIT_LOGS = CollectionTarget("audit_log")
DEFAULT_LIMIT = 50


class AuditRepository:
    """Read access to the audit log. Admin only, org-scoped."""

    def __init__(
        self,
        store: DocumentStore,
        authorizer: RoleAuthorizer | None = None,
        indexes: IndexCatalog | None = None,
        client_sort_fallback: bool = True,
    ) -> None:
        """Initialize the repository.

        Args:
            store: Document store.
            authorizer: Authorization checks.
            indexes: Composite indexes provisioned in the store.
            client_sort_fallback: Sort on the client when an index is missing.
        """
        self._store = store
        self._authorizer = authorizer or RoleAuthorizer()
        self._builder = QueryBuilder(Collection.AUDIT_LOGS, indexes, client_sort_fallback)

    async def list(
        self,
        actor: SessionUser,
        entity_type: AuditEntityType | str | None = None,
        entity_id: str | None = None,
        actor_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = DEFAULT_LIMIT,
        start_after: str | None = None,
    ) -> list[AuditLogEntry]:
        """List audit log entries, newest first.

        Args:
            actor: Requesting user; must be an admin.
            entity_type: Filter by entity type.
            entity_id: Filter by entity.
            actor_id: Filter by acting user.
            start_date: Entries created at or after this time.
            end_date: Entries created at or before this time.
            limit: Maximum entries to return.
            start_after: Id of the last entry of the previous page.

        Returns:
            Matching entries.

        Raises:
            PermissionDenied: If the actor is not an admin.
        """
        self._authorizer.authorize(actor, Action.READ, AUDIT_LOGS)

        filters: list[Predicate] = []
        if entity_type:
            filters.append(Predicate.eq("entityType", AuditEntityType(entity_type)))
        if entity_id:
            filters.append(Predicate.eq("entityId", entity_id))
        if actor_id:
            filters.append(Predicate.eq("actorId", actor_id))
        if start_date:
            filters.append(Predicate.range("createdAt", Operator.GE, start_date))
        if end_date:
            filters.append(Predicate.range("createdAt", Operator.LE, end_date))

        query = self._builder.compose(filters, limit=limit, start_after=start_after)
        scoped = ScopedStore(self._store, actor)
        documents = await scoped.list(Collection.AUDIT_LOGS, query)

        logger.debug("audit_logs_listed", org_id=actor.org_id, count=len(documents))
        return [AuditLogEntry.model_validate(d) for d in documents]

    async def get(self, actor: SessionUser, entry_id: str) -> AuditLogEntry:
        """Get a single audit log entry.

        Raises:
            PermissionDenied: If the actor is not an admin.
            EntityNotFound: If no such entry exists in the actor's organization.
        """
        self._authorizer.authorize(actor, Action.READ, AUDIT_LOGS)
        scoped = ScopedStore(self._store, actor)
        document = await scoped.read(Collection.AUDIT_LOGS, entry_id)
        if document is None:
            raise EntityNotFound("audit log", entry_id)
        return AuditLogEntry.model_validate(document)
