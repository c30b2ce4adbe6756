"""Domain-specific exceptions.

All exceptions in the workassign system inherit from WorkAssignError,
making it easy to catch all system errors while still being able
to handle specific error types.
"""

from __future__ import annotations

from typing import Any

NOT_AUTHORIZED_MESSAGE = "Not authorized"


class WorkAssignError(Exception):
    """Base exception for all workassign errors.

    All custom exceptions in the system should inherit from this class
    to enable catching all workassign-specific errors with a single except clause.
    """

    pass


class PermissionDenied(WorkAssignError):
    """Actor may not perform the requested action.

    Raised for role, ownership and disabled-account failures alike. The
    message shown to end users is always the generic "Not authorized";
    the attributes below are for logs only and must never be echoed
    back together with entity contents.

    Attributes:
        action: The attempted action.
        required_role: Minimum role the check required, if any.
        required_ownership: Ownership set the check required, if any
            (e.g. "managedTeamIds").
        force_sign_out: True when the actor's account is disabled and the
            caller must end the identity session.
    """

    def __init__(
        self,
        action: str,
        required_role: str | None = None,
        required_ownership: str | None = None,
        force_sign_out: bool = False,
    ) -> None:
        """Initialize PermissionDenied.

        Args:
            action: The attempted action.
            required_role: Minimum role required by the failed check.
            required_ownership: Ownership set required by the failed check.
            force_sign_out: Whether the caller must sign the actor out.
        """
        super().__init__(NOT_AUTHORIZED_MESSAGE)
        self.action = action
        self.required_role = required_role
        self.required_ownership = required_ownership
        self.force_sign_out = force_sign_out


class InvalidTransition(WorkAssignError):
    """Requested task status is not reachable from the current status.

    Attributes:
        current: Status the task is in.
        requested: Status that was requested.
    """

    def __init__(self, current: str, requested: str) -> None:
        """Initialize InvalidTransition.

        Args:
            current: Status the task is in.
            requested: Status that was requested.
        """
        super().__init__(f"Cannot transition from {current} to {requested}")
        self.current = current
        self.requested = requested


class TenantIsolationViolation(WorkAssignError):
    """Attempted addressing outside the actor's organization.

    This is a FATAL programming-contract error. It is never reachable
    through the public API surface with valid input; when raised the
    request is logged and aborted, never recovered.
    """

    pass


class TransportUnavailable(WorkAssignError):
    """The document store could not be reached.

    Raised by the primary store to trigger the REST fallback. When the
    fallback also fails the error reaches the caller with `retryable`
    set, and should be presented as a connectivity problem.

    Attributes:
        retryable: Whether the operation is worth retrying.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        """Initialize TransportUnavailable.

        Args:
            message: Error description.
            retryable: Whether error is transient and retryable.
        """
        super().__init__(message)
        self.retryable = retryable


class AuditWriteFailure(WorkAssignError):
    """An audit entry could not be written.

    Never propagated to the caller of a mutation. It is handed to the
    observability sink instead.

    Attributes:
        action_type: Audit action that failed to record.
        entity_id: Entity the entry was about.
    """

    def __init__(self, action_type: str, entity_id: str, cause: BaseException) -> None:
        """Initialize AuditWriteFailure.

        Args:
            action_type: Audit action that failed to record.
            entity_id: Entity the entry was about.
            cause: Underlying error.
        """
        super().__init__(f"Failed to record {action_type} for {entity_id}: {cause}")
        self.action_type = action_type
        self.entity_id = entity_id
        self.cause = cause


class QueryCompositionError(WorkAssignError):
    """A query cannot be expressed against the document store.

    Raised at compose time, e.g. for more than one inclusion-in-set
    predicate, rather than silently dropping predicates.
    """

    pass


class MissingIndexError(QueryCompositionError):
    """Filter and ordering need a composite index that does not exist.

    Only raised when client-side sort fallback is disabled.
    """

    def __init__(self, collection: str, fields: tuple[str, ...]) -> None:
        """Initialize MissingIndexError.

        Args:
            collection: Collection being queried.
            fields: Field combination the index would need.
        """
        super().__init__(f"Composite index required on {collection}: {', '.join(fields)}")
        self.collection = collection
        self.fields = fields


class EntityNotFound(WorkAssignError):
    """Entity does not exist in the actor's organization."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        """Initialize EntityNotFound.

        Args:
            entity_type: Kind of entity.
            entity_id: Requested id.
        """
        super().__init__(f"{entity_type.capitalize()} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidRequest(WorkAssignError):
    """Request is well-formed but violates a domain rule."""

    pass


class AppendOnlyViolation(WorkAssignError):
    """Attempted update or delete of an append-only record."""

    pass


class StoreRequestError(WorkAssignError):
    """The document store rejected a request.

    Attributes:
        status_code: HTTP status returned by the store, if any.
        details: Additional error details.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize StoreRequestError.

        Args:
            message: Error description.
            status_code: HTTP status returned by the store.
            details: Additional error details.
        """
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}
