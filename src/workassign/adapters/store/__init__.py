"""Document store adapters, query composition and the wire codec."""

from workassign.adapters.store.codec import ValueCodec
from workassign.adapters.store.fallback import FallbackDocumentStore
from workassign.adapters.store.memory import InMemoryDocumentStore
from workassign.adapters.store.query import (
    Collection,
    CompositeIndex,
    Direction,
    IndexCatalog,
    Operator,
    OrderBy,
    Predicate,
    Query,
    QueryBuilder,
)
from workassign.adapters.store.rest import RestDocumentStore
from workassign.adapters.store.scoped import ScopedStore, org_path

__all__ = [
    "Collection",
    "CompositeIndex",
    "Direction",
    "FallbackDocumentStore",
    "InMemoryDocumentStore",
    "IndexCatalog",
    "Operator",
    "OrderBy",
    "Predicate",
    "Query",
    "QueryBuilder",
    "RestDocumentStore",
    "ScopedStore",
    "ValueCodec",
    "org_path",
]
