"""Project service."""

from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, Predicate
from workassign.core.commands import CreateProjectCommand, UpdateProjectCommand
from workassign.core.domain_types import Project, ProjectStatus, SessionUser
from workassign.core.rbac import ScopeKind
from workassign.services.groups import GroupService


class ProjectService(GroupService[Project]):
    """Projects: managers create, owning managers edit, admins delete."""

    model = Project
    collection = Collection.PROJECTS
    kind = ScopeKind.PROJECT
    entity_type = AuditEntityType.PROJECT
    created = AuditAction.PROJECT_CREATED
    updated = AuditAction.PROJECT_UPDATED
    deleted = AuditAction.PROJECT_DELETED
    required_fields = frozenset({"name", "manager_ids", "member_ids", "status"})

    async def list(
        self,
        actor: SessionUser,
        manager_id: str | None = None,
        team_id: str | None = None,
        status: ProjectStatus | None = None,
        member_id: str | None = None,
    ) -> list[Project]:
        """Projects the actor may see, sorted by name.

        Args:
            actor: Requesting user.
            manager_id: Only projects managed by this user.
            team_id: Only projects of this team.
            status: Only projects in this status.
            member_id: Only projects this user is a member of.
        """
        predicates = []
        if manager_id:
            predicates.append(Predicate.array_contains("managerIds", manager_id))
        if team_id:
            predicates.append(Predicate.eq("teamId", team_id))
        if status:
            predicates.append(Predicate.eq("status", status))
        if member_id:
            predicates.append(Predicate.array_contains("memberIds", member_id))
        return await self._list(actor, predicates)

    async def create(self, actor: SessionUser, command: CreateProjectCommand) -> Project:
        """Create a project and link its managers and members."""
        return await self._create(actor, command.model_dump())

    async def update(self, actor: SessionUser, command: UpdateProjectCommand) -> Project:
        """Edit a project, relinking changed managers and members."""
        return await self._update(actor, command.project_id, command.changes())
