"""User service: directory, invitations, profile, role and status."""

from __future__ import annotations

import structlog
from pydantic.alias_generators import to_camel

from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, OrderBy, Predicate
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.commands import ChangeRoleCommand, CreateUserCommand, UpdateProfileCommand
from workassign.core.domain_types import SessionUser, User, UserRole, UserStatus
from workassign.core.exceptions import InvalidRequest
from workassign.core.interfaces import IdentityProvider
from workassign.core.rbac import Action, CollectionTarget
from workassign.services.base import ServiceContext

logger = structlog.get_logger()

USERS = CollectionTarget("user")


async def find_user_by_email(
    context: ServiceContext, scoped: ScopedStore, email: str
) -> User | None:
    """Look up a user of the scoped organization by normalized email."""
    query = context.builder(Collection.USERS).compose(
        [Predicate.eq("email", email.strip().lower())], order_by=OrderBy("email"), limit=1
    )
    documents = await scoped.list(Collection.USERS, query)
    if not documents:
        return None
    user: User = User.from_document(documents[0])
    return user


class UserService:
    """User operations. Users are never hard-deleted, only disabled."""

    def __init__(
        self,
        context: ServiceContext,
        identity: IdentityProvider | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            context: Shared service collaborators.
            identity: Identity provider, used to end sessions of disabled users.
        """
        self.context = context
        self.identity = identity

    async def _load(self, scoped: ScopedStore, user_id: str) -> User:
        document = await scoped.read_required(Collection.USERS, user_id, entity_type="user")
        user: User = User.from_document(document)
        return user

    async def get(self, actor: SessionUser, user_id: str) -> User:
        """Get a user of the actor's organization."""
        user = await self._load(self.context.scoped(actor), user_id)
        self.context.authorizer.authorize(actor, Action.READ, user)
        return user

    async def list(
        self,
        actor: SessionUser,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        team_id: str | None = None,
    ) -> list[User]:
        """List users ordered by display name."""
        self.context.authorizer.authorize(actor, Action.READ, USERS)

        predicates: list[Predicate] = []
        if role:
            predicates.append(Predicate.eq("role", role))
        if status:
            predicates.append(Predicate.eq("status", status))
        if team_id:
            predicates.append(Predicate.array_contains("teamIds", team_id))

        query = self.context.builder(Collection.USERS).compose(predicates)
        documents = await self.context.scoped(actor).list(Collection.USERS, query)
        return [User.from_document(d) for d in documents]

    async def create(self, actor: SessionUser, command: CreateUserCommand) -> User:
        """Invite a user. The account stays pending until its first sign-in.

        Raises:
            InvalidRequest: If the email is already in use in the organization.
        """
        self.context.authorizer.authorize(actor, Action.CREATE, USERS)
        scoped = self.context.scoped(actor)

        if await find_user_by_email(self.context, scoped, command.email) is not None:
            raise InvalidRequest("A user with this email already exists")

        user_id = scoped.new_id()
        draft = User(
            id=user_id,
            org_id=actor.org_id,
            email=command.email,
            display_name=command.display_name,
            role=command.role,
            status=UserStatus.PENDING,
        )
        written = await scoped.write(Collection.USERS, user_id, draft.to_document(), create=True)
        user: User = User.from_document({**written, "id": user_id})

        logger.info("user_invited", user_id=user_id, role=user.role.value, actor_id=actor.id)
        await self.context.recorder.record(
            actor,
            AuditAction.USER_CREATED,
            AuditEntityType.USER,
            user_id,
            user.display_name,
            after=user,
        )
        return user

    async def update_profile(self, actor: SessionUser, command: UpdateProfileCommand) -> User:
        """Edit display name or avatar. Users may always edit their own."""
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, command.user_id)
        self.context.authorizer.authorize(actor, Action.UPDATE, before)

        changes = command.changes()
        if "display_name" in changes and changes["display_name"] is None:
            raise InvalidRequest("Cannot clear required fields: display_name")
        if not changes:
            return before

        await scoped.write(
            Collection.USERS, before.id, {to_camel(k): v for k, v in changes.items()}
        )
        after = await self._load(scoped, before.id)
        await self._record(actor, AuditAction.USER_UPDATED, before, after)
        return after

    async def change_role(self, actor: SessionUser, command: ChangeRoleCommand) -> User:
        """Change another user's role (admin only, never one's own)."""
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, command.user_id)
        self.context.authorizer.authorize(actor, Action.CHANGE_ROLE, before)
        if before.role == command.role:
            return before

        await scoped.write(Collection.USERS, before.id, {"role": command.role})
        after = await self._load(scoped, before.id)

        logger.info(
            "user_role_changed",
            user_id=before.id,
            from_role=before.role.value,
            to_role=after.role.value,
            actor_id=actor.id,
        )
        await self._record(actor, AuditAction.USER_ROLE_CHANGED, before, after)
        return after

    async def disable(self, actor: SessionUser, user_id: str) -> User:
        """Disable an account and end its sessions."""
        after = await self._set_status(actor, user_id, UserStatus.DISABLED)
        if self.identity is not None:
            await self.identity.sign_out(user_id)
        return after

    async def activate(self, actor: SessionUser, user_id: str) -> User:
        """Re-enable an account."""
        return await self._set_status(actor, user_id, UserStatus.ACTIVE)

    async def _set_status(self, actor: SessionUser, user_id: str, status: UserStatus) -> User:
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, user_id)
        self.context.authorizer.authorize(actor, Action.CHANGE_STATUS, before)
        if before.status == status:
            return before

        await scoped.write(Collection.USERS, user_id, {"status": status})
        after = await self._load(scoped, user_id)

        logger.info("user_status_changed", user_id=user_id, status=status.value, actor_id=actor.id)
        action = (
            AuditAction.USER_DISABLED if status == UserStatus.DISABLED else AuditAction.USER_UPDATED
        )
        await self._record(actor, action, before, after)
        return after

    async def _record(
        self, actor: SessionUser, action: AuditAction, before: User, after: User
    ) -> None:
        await self.context.recorder.record(
            actor,
            action,
            AuditEntityType.USER,
            after.id,
            after.display_name,
            before=before,
            after=after,
        )
