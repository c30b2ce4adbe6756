"""Application services."""

from workassign.services.base import ServiceContext
from workassign.services.membership import (
    MembershipChange,
    MembershipSync,
    ReferenceSwap,
    plan_changes,
    plan_transfer,
)
from workassign.services.projects import ProjectService
from workassign.services.session import SessionService
from workassign.services.tasks import TaskFilters, TaskService
from workassign.services.teams import TeamService
from workassign.services.users import UserService

__all__ = [
    "MembershipChange",
    "MembershipSync",
    "ProjectService",
    "ReferenceSwap",
    "ServiceContext",
    "SessionService",
    "TaskFilters",
    "TaskService",
    "TeamService",
    "UserService",
    "plan_changes",
    "plan_transfer",
]
