"""Team service."""

from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, Predicate
from workassign.core.commands import CreateTeamCommand, UpdateTeamCommand
from workassign.core.domain_types import SessionUser, Team
from workassign.core.rbac import ScopeKind
from workassign.services.groups import GroupService


class TeamService(GroupService[Team]):
    """Teams: admins create and delete, owning managers edit."""

    model = Team
    collection = Collection.TEAMS
    kind = ScopeKind.TEAM
    entity_type = AuditEntityType.TEAM
    created = AuditAction.TEAM_CREATED
    updated = AuditAction.TEAM_UPDATED
    deleted = AuditAction.TEAM_DELETED

    async def list(self, actor: SessionUser, manager_id: str | None = None) -> list[Team]:
        """Teams the actor may see, sorted by name.

        Args:
            actor: Requesting user.
            manager_id: Only teams managed by this user.
        """
        predicates = []
        if manager_id:
            predicates.append(Predicate.array_contains("managerIds", manager_id))
        return await self._list(actor, predicates)

    async def create(self, actor: SessionUser, command: CreateTeamCommand) -> Team:
        """Create a team and link its managers and members."""
        return await self._create(actor, command.model_dump())

    async def update(self, actor: SessionUser, command: UpdateTeamCommand) -> Team:
        """Edit a team, relinking changed managers and members."""
        return await self._update(actor, command.team_id, command.changes())
