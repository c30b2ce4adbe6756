"""RBAC domain types."""

from dataclasses import dataclass
from enum import Enum

from workassign.core.domain_types import UserRole

# Role hierarchy - higher rank = more permissions
ROLE_RANK: dict[UserRole, int] = {
    UserRole.EMPLOYEE: 1,
    UserRole.MANAGER: 2,
    UserRole.ADMIN: 3,
}


def role_rank(role: UserRole | str) -> int:
    """Get the numeric rank of a role."""
    return ROLE_RANK[UserRole(role)]


def has_minimum_role(role: UserRole | str, required: UserRole | str) -> bool:
    """Check whether a role meets a minimum role requirement."""
    return role_rank(role) >= role_rank(required)


class Action(str, Enum):
    """Actions subject to authorization."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    COMMENT = "comment"
    TRANSITION = "transition"
    EDIT_CHECKLIST = "edit_checklist"
    CHANGE_ROLE = "change_role"
    CHANGE_STATUS = "change_status"


class ScopeKind(str, Enum):
    """Kinds of manager-owned resources."""

    TEAM = "team"
    PROJECT = "project"


@dataclass(frozen=True)
class ManagedScope:
    """A team or project a manager may own."""

    kind: ScopeKind
    id: str

    @property
    def ownership_field(self) -> str:
        """Name of the actor field listing owned ids of this kind."""
        if self.kind == ScopeKind.TEAM:
            return "managedTeamIds"
        return "managedProjectIds"


@dataclass(frozen=True)
class CollectionTarget:
    """A whole collection rather than one record.

    Used to authorize creation and collection-level reads, where there is
    no single record to inspect.
    """

    entity_type: str
