"""Role-based access control."""

from workassign.core.rbac.authorizer import RoleAuthorizer
from workassign.core.rbac.types import (
    ROLE_RANK,
    Action,
    CollectionTarget,
    ManagedScope,
    ScopeKind,
    has_minimum_role,
    role_rank,
)

__all__ = [
    "ROLE_RANK",
    "Action",
    "CollectionTarget",
    "ManagedScope",
    "RoleAuthorizer",
    "ScopeKind",
    "has_minimum_role",
    "role_rank",
]
