"""Collaborators shared by the entity services."""

from dataclasses import dataclass, field

from workassign.adapters.audit.recorder import AuditRecorder
from workassign.adapters.store.query import Collection, IndexCatalog, QueryBuilder
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.domain_types import SessionUser
from workassign.core.interfaces import Clock, DocumentStore, SystemClock
from workassign.core.rbac import RoleAuthorizer


@dataclass
class ServiceContext:
    """Everything a service needs besides the actor.

    Built once at startup and shared; holds no per-request state.
    """

    store: DocumentStore
    recorder: AuditRecorder
    authorizer: RoleAuthorizer = field(default_factory=RoleAuthorizer)
    clock: Clock = field(default_factory=SystemClock)
    indexes: IndexCatalog = field(default_factory=IndexCatalog)
    client_sort_fallback: bool = True

    def scoped(self, actor: SessionUser) -> ScopedStore:
        """Store bound to the actor's organization."""
        return ScopedStore(self.store, actor, self.clock)

    def builder(self, collection: Collection) -> QueryBuilder:
        """Query builder for a collection."""
        return QueryBuilder(collection, self.indexes, self.client_sort_fallback)
