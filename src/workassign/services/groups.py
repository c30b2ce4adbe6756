"""Shared behaviour of teams and projects.

Both are groups of users with managers and members, gated by ownership
and kept in step with the users' back-references through MembershipSync.
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

import structlog
from pydantic.alias_generators import to_camel

from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, Predicate
from workassign.core.domain_types import Project, SessionUser, Team
from workassign.core.exceptions import InvalidRequest
from workassign.core.rbac import Action, CollectionTarget, ScopeKind
from workassign.services.base import ServiceContext
from workassign.services.membership import MembershipSync, plan_changes

logger = structlog.get_logger()

GroupT = TypeVar("GroupT", Team, Project)


class GroupService(Generic[GroupT]):
    """CRUD for a team-like collection."""

    model: ClassVar[type[Team] | type[Project]]
    collection: ClassVar[Collection]
    kind: ClassVar[ScopeKind]
    entity_type: ClassVar[AuditEntityType]
    created: ClassVar[AuditAction]
    updated: ClassVar[AuditAction]
    deleted: ClassVar[AuditAction]
    required_fields: ClassVar[frozenset[str]] = frozenset({"name", "manager_ids", "member_ids"})

    def __init__(self, context: ServiceContext, sync: MembershipSync | None = None) -> None:
        """Initialize the service.

        Args:
            context: Shared service collaborators.
            sync: Back-reference saga.
        """
        self.context = context
        self.sync = sync or MembershipSync()

    @property
    def target(self) -> CollectionTarget:
        """Collection-level authorization target."""
        return CollectionTarget(self.kind.value)

    async def _load_document(self, actor: SessionUser, entity_id: str) -> dict[str, Any]:
        return await self.context.scoped(actor).read_required(
            self.collection, entity_id, entity_type=self.kind.value
        )

    async def get(self, actor: SessionUser, entity_id: str) -> GroupT:
        """Get one entity the actor may read."""
        entity: GroupT = self.model.from_document(await self._load_document(actor, entity_id))
        self.context.authorizer.authorize(actor, Action.READ, entity)
        return entity

    async def _list(self, actor: SessionUser, predicates: list[Predicate]) -> list[GroupT]:
        self.context.authorizer.authorize(actor, Action.READ, self.target)
        query = self.context.builder(self.collection).compose(predicates)
        documents = await self.context.scoped(actor).list(self.collection, query)
        entities: list[GroupT] = [self.model.from_document(d) for d in documents]
        authorizer = self.context.authorizer
        return [e for e in entities if authorizer.is_allowed(actor, Action.READ, e)]

    async def _create(self, actor: SessionUser, fields: dict[str, Any]) -> GroupT:
        self.context.authorizer.authorize(actor, Action.CREATE, self.target)
        scoped = self.context.scoped(actor)

        entity_id = scoped.new_id()
        draft = self.model(id=entity_id, org_id=actor.org_id, created_by=actor.id, **fields)
        document = draft.to_document()
        changes = plan_changes(self.kind, [], [], draft.manager_ids, draft.member_ids)

        written = await self.sync.run(
            scoped,
            entity_id,
            changes,
            write_entity=lambda: scoped.write(self.collection, entity_id, document, create=True),
            undo_entity=lambda: scoped.delete(self.collection, entity_id),
        )
        entity: GroupT = self.model.from_document({**written, "id": entity_id})

        logger.info(
            f"{self.kind.value}_created",
            entity_id=entity_id,
            org_id=actor.org_id,
            actor_id=actor.id,
        )
        await self.context.recorder.record(
            actor, self.created, self.entity_type, entity_id, entity.name, after=entity
        )
        return entity

    async def _update(self, actor: SessionUser, entity_id: str, changes: dict[str, Any]) -> GroupT:
        scoped = self.context.scoped(actor)
        previous = await self._load_document(actor, entity_id)
        before: GroupT = self.model.from_document(previous)
        self.context.authorizer.authorize(actor, Action.UPDATE, before)

        cleared = sorted(k for k in self.required_fields if k in changes and changes[k] is None)
        if cleared:
            raise InvalidRequest(f"Cannot clear required fields: {', '.join(cleared)}")
        if not changes:
            return before

        membership = plan_changes(
            self.kind,
            before.manager_ids,
            before.member_ids,
            changes.get("manager_ids", before.manager_ids),
            changes.get("member_ids", before.member_ids),
        )
        patch = {to_camel(k): v for k, v in changes.items()}
        await self.sync.run(
            scoped,
            entity_id,
            membership,
            write_entity=lambda: scoped.write(self.collection, entity_id, patch),
            undo_entity=lambda: scoped.restore(self.collection, entity_id, previous),
        )
        after: GroupT = self.model.from_document(await self._load_document(actor, entity_id))

        logger.info(f"{self.kind.value}_updated", entity_id=entity_id, fields=sorted(changes))
        await self.context.recorder.record(
            actor, self.updated, self.entity_type, entity_id, after.name, before=before, after=after
        )
        return after

    async def delete(self, actor: SessionUser, entity_id: str) -> None:
        """Delete the entity and unlink every manager and member."""
        scoped = self.context.scoped(actor)
        previous = await self._load_document(actor, entity_id)
        before: GroupT = self.model.from_document(previous)
        self.context.authorizer.authorize(actor, Action.DELETE, before)

        membership = plan_changes(self.kind, before.manager_ids, before.member_ids, [], [])
        await self.sync.run(
            scoped,
            entity_id,
            membership,
            write_entity=lambda: scoped.delete(self.collection, entity_id),
            undo_entity=lambda: scoped.restore(self.collection, entity_id, previous),
        )

        logger.info(f"{self.kind.value}_deleted", entity_id=entity_id, actor_id=actor.id)
        await self.context.recorder.record(
            actor, self.deleted, self.entity_type, entity_id, before.name, before=before
        )
