"""Organization-scoped CRUD facade over a DocumentStore.

Every path is built from the authenticated actor's organization id, never
from caller-supplied text:

    orgs/{orgId}/users
    orgs/{orgId}/teams
    orgs/{orgId}/projects
    orgs/{orgId}/tasks
    orgs/{orgId}/tasks/{taskId}/comments
    orgs/{orgId}/auditLogs

Anything that would address a document outside that prefix raises
TenantIsolationViolation, which is fatal: it is logged and the request is
aborted.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import BaseModel

from workassign.adapters.store.query import Collection, Query, apply_client_order
from workassign.core.domain_types import SessionUser, plain
from workassign.core.exceptions import (
    AppendOnlyViolation,
    EntityNotFound,
    TenantIsolationViolation,
)
from workassign.core.interfaces import Clock, DocumentStore, SystemClock

logger = structlog.get_logger()

ORGS = "orgs"
APPEND_ONLY = frozenset({Collection.AUDIT_LOGS.value})


def _check_segment(value: str, what: str) -> None:
    if not value or "/" in value:
        logger.critical("tenant_isolation_violation", reason=f"invalid {what}", value=value)
        raise TenantIsolationViolation(f"Invalid {what}: {value!r}")


def org_path(org_id: str, collection: Collection | str, parent_id: str | None = None) -> str:
    """Build the store path of an org-scoped collection.

    Args:
        org_id: Organization id.
        collection: Collection name.
        parent_id: Task id, required for comments and rejected otherwise.

    Returns:
        Slash-separated collection path.
    """
    name = Collection(collection)
    _check_segment(org_id, "organization id")
    if name == Collection.COMMENTS:
        if parent_id is None:
            raise ValueError("comments are addressed through their task id")
        _check_segment(parent_id, "task id")
        return f"{ORGS}/{org_id}/{Collection.TASKS.value}/{parent_id}/{name.value}"
    if parent_id is not None:
        raise ValueError(f"{name.value} is not a child collection")
    return f"{ORGS}/{org_id}/{name.value}"


def to_stored(value: Any) -> Any:
    """Convert models and enums inside a patch to stored values."""
    if isinstance(value, BaseModel):
        to_document = getattr(value, "to_document", None)
        if to_document is not None:
            return to_document()
        return plain(value.model_dump(by_alias=True, exclude_none=True))
    if isinstance(value, dict):
        return {k: to_stored(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_stored(v) for v in value]
    return plain(value)


class ScopedStore:
    """CRUD bound to one actor's organization.

    Writes stamp ``updatedAt``; creations also stamp ``createdAt``,
    ``createdBy`` and ``orgId``. The audit log collection is append-only.
    """

    def __init__(
        self,
        store: DocumentStore,
        actor: SessionUser,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the scoped store.

        Args:
            store: Underlying document store.
            actor: Authenticated actor whose organization scopes every call.
            clock: Time source for timestamps.
        """
        self.store = store
        self.actor = actor
        self.clock = clock or SystemClock()

    @property
    def org_id(self) -> str:
        """Organization every path is bound to."""
        return self.actor.org_id

    def path(self, collection: Collection | str, parent_id: str | None = None) -> str:
        """Collection path within the actor's organization."""
        return org_path(self.org_id, collection, parent_id)

    def new_id(self) -> str:
        """Generate an id for a new document."""
        return self.store.new_id()

    async def read(
        self,
        collection: Collection | str,
        doc_id: str,
        parent_id: str | None = None,
    ) -> dict[str, Any] | None:
        """Read one document, or None if it does not exist."""
        _check_segment(doc_id, "document id")
        document = await self.store.get(self.path(collection, parent_id), doc_id)
        if document is not None:
            self._check_org(document)
        return document

    async def read_required(
        self,
        collection: Collection | str,
        doc_id: str,
        parent_id: str | None = None,
        entity_type: str | None = None,
    ) -> dict[str, Any]:
        """Read one document.

        Raises:
            EntityNotFound: If the document does not exist.
        """
        document = await self.read(collection, doc_id, parent_id)
        if document is None:
            raise EntityNotFound(entity_type or Collection(collection).value, doc_id)
        return document

    async def list(
        self,
        collection: Collection | str,
        query: Query,
        parent_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a composed query and apply its client-side ordering."""
        name = Collection(collection).value
        if query.collection != name:
            raise ValueError(f"Query for {query.collection} run against {name}")
        documents = await self.store.list(self.path(collection, parent_id), query)
        for document in documents:
            self._check_org(document)
        return apply_client_order(query, documents)

    async def write(
        self,
        collection: Collection | str,
        doc_id: str,
        patch: dict[str, Any],
        create: bool = False,
        parent_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a document or merge a patch into an existing one.

        Args:
            collection: Target collection.
            doc_id: Document id.
            patch: Fields to write (camelCase).
            create: Create the document instead of updating it.
            parent_id: Task id for comments.

        Returns:
            The fields actually written, including stamps.

        Raises:
            TenantIsolationViolation: For ids containing "/" or a patch
                carrying another organization's id.
            AppendOnlyViolation: For updates of append-only collections.
            EntityNotFound: When updating a missing document.
        """
        name = Collection(collection).value
        _check_segment(doc_id, "document id")
        data = to_stored(dict(patch))
        data.pop("id", None)

        org_id = data.get("orgId")
        if org_id is not None and org_id != self.org_id:
            logger.critical(
                "tenant_isolation_violation",
                reason="foreign orgId in patch",
                collection=name,
                actor_id=self.actor.id,
            )
            raise TenantIsolationViolation("Patch addresses another organization")

        now = self.clock.now()
        path = self.path(collection, parent_id)

        if create:
            data["orgId"] = self.org_id
            data["createdAt"] = now
            if name not in APPEND_ONLY:
                data["updatedAt"] = now
                data.setdefault("createdBy", self.actor.id)
            await self.store.set(path, doc_id, data)
            return data

        if name in APPEND_ONLY:
            raise AppendOnlyViolation(f"{name} entries cannot be modified")
        # orgId is immutable after creation
        data.pop("orgId", None)
        data["updatedAt"] = now
        await self.store.update(path, doc_id, data)
        return data

    async def restore(
        self,
        collection: Collection | str,
        doc_id: str,
        document: dict[str, Any],
        parent_id: str | None = None,
    ) -> None:
        """Put back a previously read document exactly as it was.

        Used to compensate a failed multi-document operation; no stamps are
        applied.
        """
        name = Collection(collection).value
        if name in APPEND_ONLY:
            raise AppendOnlyViolation(f"{name} entries cannot be modified")
        _check_segment(doc_id, "document id")
        self._check_org(document)
        data = {k: v for k, v in document.items() if k != "id"}
        await self.store.set(self.path(collection, parent_id), doc_id, data)

    async def delete(
        self,
        collection: Collection | str,
        doc_id: str,
        parent_id: str | None = None,
    ) -> None:
        """Delete a document.

        Raises:
            AppendOnlyViolation: For append-only collections.
        """
        name = Collection(collection).value
        if name in APPEND_ONLY:
            raise AppendOnlyViolation(f"{name} entries cannot be deleted")
        _check_segment(doc_id, "document id")
        await self.store.delete(self.path(collection, parent_id), doc_id)

    async def add_to_array(
        self,
        collection: Collection | str,
        doc_id: str,
        field: str,
        values: Iterable[str],
    ) -> bool:
        """Add values to an array field (union semantics).

        Returns:
            True if the document changed.
        """
        document = await self.read_required(collection, doc_id)
        current = list(document.get(field) or [])
        added = [v for v in dict.fromkeys(values) if v not in current]
        if not added:
            return False
        await self.write(collection, doc_id, {field: current + added})
        return True

    async def remove_from_array(
        self,
        collection: Collection | str,
        doc_id: str,
        field: str,
        values: Iterable[str],
    ) -> bool:
        """Remove values from an array field.

        Returns:
            True if the document changed.
        """
        document = await self.read_required(collection, doc_id)
        current = list(document.get(field) or [])
        removing = set(values)
        kept = [v for v in current if v not in removing]
        if len(kept) == len(current):
            return False
        await self.write(collection, doc_id, {field: kept})
        return True

    async def replace_in_array(
        self,
        collection: Collection | str,
        doc_id: str,
        field: str,
        old: str,
        new: str,
    ) -> bool:
        """Replace one value of an array field in place, keeping order.

        Returns:
            True if the document changed.
        """
        document = await self.read_required(collection, doc_id)
        current = list(document.get(field) or [])
        if old not in current:
            return False
        replaced = list(dict.fromkeys(new if v == old else v for v in current))
        await self.write(collection, doc_id, {field: replaced})
        return True

    def _check_org(self, document: dict[str, Any]) -> None:
        org_id = document.get("orgId")
        if org_id is not None and org_id != self.org_id:
            logger.critical(
                "tenant_isolation_violation",
                reason="document from another organization",
                document_id=document.get("id"),
                actor_id=self.actor.id,
            )
            raise TenantIsolationViolation("Document belongs to another organization")
