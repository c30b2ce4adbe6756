"""Query composition for the org-scoped document store.

Predicates are AND-ed; there is no OR. The builder mirrors the hosted
store's limits instead of hiding them:

- at most one inclusion-in-set (``in``) predicate and at most one
  ``array-contains`` predicate per query, rejected at compose time;
- filter + ordering combinations that need a composite index which is not
  provisioned either raise MissingIndexError or, with client sort fallback
  enabled, drop the server-side ordering and sort the returned page on the
  client. Under pagination that ordering is only approximate-to-page: each
  page is sorted, the sequence of pages is not.

Team and project listings are always sorted by name on the client so that
no index is needed for them at all.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from workassign.core.domain_types import plain
from workassign.core.exceptions import MissingIndexError, QueryCompositionError

logger = structlog.get_logger()


class Collection(str, Enum):
    """Org-scoped collections."""

    USERS = "users"
    TEAMS = "teams"
    PROJECTS = "projects"
    TASKS = "tasks"
    COMMENTS = "comments"
    AUDIT_LOGS = "auditLogs"


class Operator(str, Enum):
    """Predicate operators supported by the store."""

    EQ = "=="
    ARRAY_CONTAINS = "array-contains"
    LE = "<="
    GE = ">="
    LT = "<"
    GT = ">"
    IN = "in"


RANGE_OPERATORS = frozenset({Operator.LE, Operator.GE, Operator.LT, Operator.GT})


class Direction(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Predicate:
    """A single filter condition on a document field."""

    field: str
    op: Operator
    value: Any

    @classmethod
    def eq(cls, field: str, value: Any) -> Predicate:
        """Field equals value."""
        return cls(field, Operator.EQ, plain(value))

    @classmethod
    def array_contains(cls, field: str, value: Any) -> Predicate:
        """Array field contains value."""
        return cls(field, Operator.ARRAY_CONTAINS, plain(value))

    @classmethod
    def range(cls, field: str, op: Operator | str, value: Any) -> Predicate:
        """Field compares to value with <=, >=, < or >."""
        operator = Operator(op)
        if operator not in RANGE_OPERATORS:
            raise QueryCompositionError(f"Not a range operator: {operator.value}")
        return cls(field, operator, plain(value))

    @classmethod
    def is_in(cls, field: str, values: Iterable[Any]) -> Predicate:
        """Field value is one of values."""
        return cls(field, Operator.IN, tuple(plain(v) for v in values))


@dataclass(frozen=True)
class OrderBy:
    """Ordering on one field."""

    field: str
    direction: Direction = Direction.ASC


@dataclass(frozen=True)
class Query:
    """A composed query.

    ``order_by`` is executed by the store; ``client_order`` is applied to
    the returned documents afterwards.
    """

    collection: str
    predicates: tuple[Predicate, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    client_order: tuple[OrderBy, ...] = ()
    limit: int | None = None
    start_after: str | None = None
    approximate_order: bool = False


@dataclass(frozen=True)
class CompositeIndex:
    """A provisioned composite index: filter fields plus one ordering field."""

    collection: str
    filter_fields: frozenset[str]
    order_field: str


@dataclass
class IndexCatalog:
    """The composite indexes known to exist in the store."""

    indexes: set[CompositeIndex] = field(default_factory=set)

    def add(self, collection: str, filter_fields: Iterable[str], order_field: str) -> None:
        """Register a provisioned index."""
        self.indexes.add(CompositeIndex(collection, frozenset(filter_fields), order_field))

    def covers(self, collection: str, filter_fields: frozenset[str], order_field: str) -> bool:
        """Check whether a filter/order combination is servable."""
        if not filter_fields:
            return True
        return CompositeIndex(collection, filter_fields, order_field) in self.indexes


DEFAULT_ORDER: dict[str, tuple[OrderBy, ...]] = {
    Collection.TASKS.value: (OrderBy("dueDate"),),
    Collection.COMMENTS.value: (OrderBy("createdAt"),),
    Collection.AUDIT_LOGS.value: (OrderBy("createdAt", Direction.DESC),),
    Collection.USERS.value: (OrderBy("displayName"),),
}

CLIENT_SORTED: dict[str, tuple[OrderBy, ...]] = {
    Collection.TEAMS.value: (OrderBy("name"),),
    Collection.PROJECTS.value: (OrderBy("name"),),
}


class QueryBuilder:
    """Composes predicates and ordering into a Query for one collection."""

    def __init__(
        self,
        collection: Collection | str,
        indexes: IndexCatalog | None = None,
        client_sort_fallback: bool = False,
    ) -> None:
        """Initialize the builder.

        Args:
            collection: Collection to query.
            indexes: Composite indexes provisioned in the store.
            client_sort_fallback: Degrade to client-side sorting instead of
                raising MissingIndexError when an index is missing.
        """
        self.collection = Collection(collection).value
        self.indexes = indexes or IndexCatalog()
        self.client_sort_fallback = client_sort_fallback

    def compose(
        self,
        filters: Sequence[Predicate] = (),
        order_by: Sequence[OrderBy] | OrderBy | None = None,
        limit: int | None = None,
        start_after: str | None = None,
    ) -> Query:
        """Compose filters and ordering into a Query.

        Args:
            filters: Predicates, combined with AND.
            order_by: Explicit ordering; defaults per collection (tasks by
                dueDate ascending).
            limit: Page size.
            start_after: Id of the last document of the previous page.

        Returns:
            The composed query.

        Raises:
            QueryCompositionError: For more than one ``in`` or
                ``array-contains`` predicate, or an empty ``in`` value list.
            MissingIndexError: If an index is missing and client sort
                fallback is disabled.
        """
        predicates = tuple(filters)
        self._validate(predicates)

        if isinstance(order_by, OrderBy):
            ordering: tuple[OrderBy, ...] = (order_by,)
        elif order_by:
            ordering = tuple(order_by)
        else:
            ordering = DEFAULT_ORDER.get(self.collection, ())

        if limit is not None and limit < 1:
            raise QueryCompositionError("limit must be positive")

        if self.collection in CLIENT_SORTED:
            return Query(
                collection=self.collection,
                predicates=predicates,
                client_order=ordering if order_by else CLIENT_SORTED[self.collection],
                limit=limit,
                start_after=start_after,
                approximate_order=limit is not None,
            )

        if ordering and not self._servable(predicates, ordering):
            fields = tuple(sorted({p.field for p in predicates} | {ordering[0].field}))
            if not self.client_sort_fallback:
                raise MissingIndexError(self.collection, fields)
            logger.warning(
                "query_index_missing_client_sort",
                collection=self.collection,
                fields=list(fields),
            )
            return Query(
                collection=self.collection,
                predicates=predicates,
                client_order=ordering,
                limit=limit,
                start_after=start_after,
                approximate_order=True,
            )

        return Query(
            collection=self.collection,
            predicates=predicates,
            order_by=ordering,
            limit=limit,
            start_after=start_after,
        )

    def _validate(self, predicates: tuple[Predicate, ...]) -> None:
        inclusion = [p for p in predicates if p.op == Operator.IN]
        if len(inclusion) > 1:
            raise QueryCompositionError(
                "At most one 'in' filter is allowed per query, got "
                + ", ".join(p.field for p in inclusion)
            )
        for predicate in inclusion:
            if not predicate.value:
                raise QueryCompositionError(f"'in' filter on {predicate.field} has no values")
        containment = [p for p in predicates if p.op == Operator.ARRAY_CONTAINS]
        if len(containment) > 1:
            raise QueryCompositionError(
                "At most one 'array-contains' filter is allowed per query, got "
                + ", ".join(p.field for p in containment)
            )

    def _servable(self, predicates: tuple[Predicate, ...], ordering: tuple[OrderBy, ...]) -> bool:
        first = ordering[0].field
        # A range filter must be on the first ordering field; no index fixes that.
        if any(p.op in RANGE_OPERATORS and p.field != first for p in predicates):
            return False
        if len(ordering) > 1:
            return self.indexes.covers(
                self.collection,
                frozenset(p.field for p in predicates) | {o.field for o in ordering[1:]},
                first,
            )
        other_fields = frozenset(p.field for p in predicates if p.field != first)
        return self.indexes.covers(self.collection, other_fields, first)


def field_value(document: dict[str, Any], path: str) -> Any:
    """Read a possibly dotted field path from a document."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def matches(predicate: Predicate, document: dict[str, Any]) -> bool:
    """Evaluate one predicate against a document."""
    value = field_value(document, predicate.field)
    target = predicate.value

    if predicate.op == Operator.EQ:
        return value is not None and value == target
    if predicate.op == Operator.ARRAY_CONTAINS:
        return isinstance(value, list) and target in value
    if predicate.op == Operator.IN:
        return value is not None and value in target
    if value is None:
        return False
    try:
        if predicate.op == Operator.LE:
            return bool(value <= target)
        if predicate.op == Operator.GE:
            return bool(value >= target)
        if predicate.op == Operator.LT:
            return bool(value < target)
        return bool(value > target)
    except TypeError:
        return False


def matches_all(predicates: Iterable[Predicate], document: dict[str, Any]) -> bool:
    """Evaluate an AND of predicates."""
    return all(matches(p, document) for p in predicates)


def _sort_key(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_documents(
    documents: Iterable[dict[str, Any]], ordering: Sequence[OrderBy]
) -> list[dict[str, Any]]:
    """Stable multi-field sort; documents missing a sort field go last."""
    result = list(documents)
    for order in reversed(ordering):
        present = [d for d in result if field_value(d, order.field) is not None]
        missing = [d for d in result if field_value(d, order.field) is None]
        present.sort(
            key=lambda d: _sort_key(field_value(d, order.field)),
            reverse=order.direction == Direction.DESC,
        )
        result = present + missing
    return result


def apply_client_order(query: Query, documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Apply the client-side part of a query to returned documents."""
    if not query.client_order:
        return documents
    return sort_documents(documents, query.client_order)
