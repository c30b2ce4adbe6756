"""Role and ownership authorization."""

import logging

from workassign.core.domain_types import (
    Comment,
    Organization,
    Project,
    SessionUser,
    Task,
    Team,
    User,
    UserRole,
)
from workassign.core.exceptions import PermissionDenied
from workassign.core.rbac.types import (
    Action,
    CollectionTarget,
    ManagedScope,
    ScopeKind,
    has_minimum_role,
)

logger = logging.getLogger(__name__)

Entity = Task | Comment | Team | Project | User | Organization | CollectionTarget

# Minimum role needed to create each kind of entity.
CREATE_ROLE: dict[str, UserRole] = {
    "task": UserRole.MANAGER,
    "project": UserRole.MANAGER,
    "team": UserRole.ADMIN,
    "user": UserRole.ADMIN,
}


class RoleAuthorizer:
    """Decides whether an actor may perform an action on an entity.

    Stateless; every decision is derived from the actor's role, status and
    ownership/membership sets plus the entity itself. Entity contents are
    never copied into the raised error.
    """

    def can_manage(self, actor: SessionUser, scope: ManagedScope) -> bool:
        """Check whether the actor may manage a team or project.

        Admins manage everything. Managers manage only scopes listed in
        their managedTeamIds/managedProjectIds. Employees manage nothing,
        whatever their ownership sets say.
        """
        if actor.is_disabled:
            return False
        if actor.role == UserRole.ADMIN:
            return True
        if actor.role != UserRole.MANAGER:
            return False
        if scope.kind == ScopeKind.TEAM:
            return scope.id in actor.profile.managed_team_ids
        return scope.id in actor.profile.managed_project_ids

    def authorize(self, actor: SessionUser, action: Action, entity: Entity) -> None:
        """Authorize an action, raising PermissionDenied on failure.

        Args:
            actor: The authenticated user.
            action: What the actor wants to do.
            entity: Target record, or a CollectionTarget for creation and
                collection-level reads.

        Raises:
            PermissionDenied: If any check fails. Disabled actors always
                fail, with force_sign_out set.
        """
        if actor.is_disabled:
            logger.info(f"authorization_denied_disabled: user_id={actor.id}")
            raise PermissionDenied(action.value, force_sign_out=True)

        if isinstance(entity, Task):
            self._authorize_task(actor, action, entity)
        elif isinstance(entity, Comment):
            self._authorize_comment(actor, action, entity)
        elif isinstance(entity, Team):
            self._authorize_scoped(
                actor, action, ManagedScope(ScopeKind.TEAM, entity.id), actor.profile.team_ids
            )
        elif isinstance(entity, Project):
            self._authorize_scoped(
                actor,
                action,
                ManagedScope(ScopeKind.PROJECT, entity.id),
                actor.profile.project_ids,
            )
        elif isinstance(entity, User):
            self._authorize_user(actor, action, entity)
        elif isinstance(entity, Organization):
            self._authorize_organization(actor, action)
        else:
            self._authorize_collection(actor, action, entity)

    def is_allowed(self, actor: SessionUser, action: Action, entity: Entity) -> bool:
        """Boolean form of authorize, for gating without exceptions."""
        try:
            self.authorize(actor, action, entity)
        except PermissionDenied:
            return False
        return True

    def _require_role(self, actor: SessionUser, action: Action, role: UserRole) -> None:
        if not has_minimum_role(actor.role, role):
            logger.debug(
                f"authorization_denied: user_id={actor.id}, action={action.value}, "
                f"required_role={role.value}"
            )
            raise PermissionDenied(action.value, required_role=role.value)

    def _authorize_task(self, actor: SessionUser, action: Action, task: Task) -> None:
        # Assignees work on their task; editing its details is for managers.
        if action in (Action.READ, Action.COMMENT, Action.TRANSITION, Action.EDIT_CHECKLIST):
            if has_minimum_role(actor.role, UserRole.MANAGER) or task.is_assignee(actor.id):
                return
            raise PermissionDenied(
                action.value,
                required_role=UserRole.MANAGER.value,
                required_ownership="assigneeIds",
            )
        if action in (Action.CREATE, Action.UPDATE, Action.DELETE):
            self._require_role(actor, action, UserRole.MANAGER)
            return
        raise PermissionDenied(action.value)

    def _authorize_comment(self, actor: SessionUser, action: Action, comment: Comment) -> None:
        if action == Action.UPDATE:
            if comment.author_id == actor.id:
                return
            raise PermissionDenied(action.value, required_ownership="authorId")
        if action == Action.DELETE:
            if comment.author_id == actor.id:
                return
            self._require_role(actor, action, UserRole.MANAGER)
            return
        raise PermissionDenied(action.value)

    def _authorize_scoped(
        self,
        actor: SessionUser,
        action: Action,
        scope: ManagedScope,
        membership: list[str],
    ) -> None:
        if action == Action.READ:
            if self.can_manage(actor, scope) or scope.id in membership:
                return
            raise PermissionDenied(
                action.value,
                required_role=UserRole.MANAGER.value,
                required_ownership=scope.ownership_field,
            )
        if action == Action.UPDATE:
            if self.can_manage(actor, scope):
                return
            raise PermissionDenied(
                action.value,
                required_role=UserRole.MANAGER.value,
                required_ownership=scope.ownership_field,
            )
        if action == Action.DELETE:
            self._require_role(actor, action, UserRole.ADMIN)
            return
        raise PermissionDenied(action.value)

    def _authorize_user(self, actor: SessionUser, action: Action, user: User) -> None:
        is_self = user.id == actor.id
        if action == Action.READ:
            return
        if action == Action.UPDATE:
            if is_self:
                return
            self._require_role(actor, action, UserRole.ADMIN)
            return
        if action in (Action.CHANGE_ROLE, Action.CHANGE_STATUS):
            if is_self:
                logger.info(f"authorization_denied_self_privilege: user_id={actor.id}")
                raise PermissionDenied(action.value, required_role=UserRole.ADMIN.value)
            self._require_role(actor, action, UserRole.ADMIN)
            return
        # Users are never hard-deleted; creation goes through CollectionTarget.
        raise PermissionDenied(action.value)

    def _authorize_organization(self, actor: SessionUser, action: Action) -> None:
        if action == Action.READ:
            return
        if action == Action.UPDATE:
            self._require_role(actor, action, UserRole.ADMIN)
            return
        raise PermissionDenied(action.value)

    def _authorize_collection(
        self, actor: SessionUser, action: Action, target: CollectionTarget
    ) -> None:
        if target.entity_type == "audit_log":
            if action == Action.READ:
                self._require_role(actor, action, UserRole.ADMIN)
                return
            raise PermissionDenied(action.value)
        if action == Action.READ:
            return
        if action == Action.CREATE and target.entity_type in CREATE_ROLE:
            self._require_role(actor, action, CREATE_ROLE[target.entity_type])
            return
        raise PermissionDenied(action.value)
