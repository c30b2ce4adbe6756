"""Session establishment: identity plus stored profile."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import structlog

from workassign.adapters.audit.recorder import AuditRecorder
from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, Predicate
from workassign.adapters.store.scoped import ORGS, ScopedStore, org_path
from workassign.core.domain_types import (
    IdentityInfo,
    Organization,
    OrganizationSettings,
    SessionUser,
    User,
    UserStatus,
)
from workassign.core.exceptions import (
    InvalidRequest,
    PermissionDenied,
    TenantIsolationViolation,
    WorkAssignError,
)
from workassign.core.interfaces import Clock, DocumentStore, IdentityProvider
from workassign.services.base import ServiceContext
from workassign.services.membership import MembershipSync, plan_transfer
from workassign.services.users import find_user_by_email

logger = structlog.get_logger()

# lastLoginAt is refreshed at most this often
LAST_LOGIN_REFRESH = timedelta(minutes=15)


class SessionService:
    """Builds the SessionUser for a bearer token.

    On the first successful authentication of an unknown user the profile
    is provisioned: an open invitation with the same email is claimed,
    otherwise a new active account is created with the organization's
    default role. Disabled accounts are signed out and rejected.
    """

    def __init__(
        self,
        context: ServiceContext,
        identity: IdentityProvider,
        default_org_id: str,
        default_settings: OrganizationSettings | None = None,
        sync: MembershipSync | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            context: Shared service collaborators.
            identity: Identity provider that verifies tokens.
            default_org_id: Organization for tokens without an org claim.
            default_settings: Settings used when the organization has no
                stored document.
            sync: Saga that moves references when an invitation is claimed.
        """
        self.context = context
        self.identity = identity
        self.default_org_id = default_org_id
        self.default_settings = default_settings or OrganizationSettings()
        self.sync = sync or MembershipSync()

    @property
    def store(self) -> DocumentStore:
        """Underlying document store."""
        return self.context.store

    @property
    def recorder(self) -> AuditRecorder:
        """Audit recorder."""
        return self.context.recorder

    @property
    def clock(self) -> Clock:
        """Time source."""
        return self.context.clock

    async def establish(self, token: str) -> SessionUser:
        """Authenticate a bearer token into a SessionUser.

        Raises:
            TokenError: If the token is invalid, expired or revoked.
            PermissionDenied: With force_sign_out, for disabled accounts and
                emails outside the organization's allowed domains.
        """
        identity = await self.identity.verify_token(token)
        org_id = identity.org_id or self.default_org_id

        document = await self.store.get(org_path(org_id, Collection.USERS), identity.user_id)
        if document is None:
            session = await self._provision(identity, org_id)
        else:
            profile: User = User.from_document(document)
            if profile.org_id != org_id:
                logger.critical(
                    "tenant_isolation_violation",
                    reason="profile organization mismatch",
                    user_id=identity.user_id,
                )
                raise TenantIsolationViolation("Profile belongs to another organization")
            session = SessionUser(identity=identity, profile=profile)

        if session.is_disabled:
            await self.identity.sign_out(session.id)
            logger.warning("disabled_user_signed_out", user_id=session.id, org_id=org_id)
            raise PermissionDenied("sign_in", force_sign_out=True)

        return await self._touch(session)

    async def organization(self, org_id: str) -> Organization:
        """Stored organization, or one built from the default settings."""
        document = await self.store.get(ORGS, org_id)
        if document is None:
            return Organization(id=org_id, name=org_id, settings=self.default_settings)
        organization: Organization = Organization.from_document(document)
        return organization

    async def _provision(self, identity: IdentityInfo, org_id: str) -> SessionUser:
        if not identity.email:
            raise InvalidRequest("Identity has no email address")

        organization = await self.organization(org_id)
        if not organization.allows_email(identity.email):
            logger.warning("sign_in_domain_rejected", user_id=identity.user_id, org_id=org_id)
            await self.identity.sign_out(identity.user_id)
            raise PermissionDenied("sign_in", force_sign_out=True)

        now = self.clock.now()
        profile = User(
            id=identity.user_id,
            org_id=org_id,
            email=identity.email,
            display_name=identity.display_name or identity.email.split("@")[0],
            role=organization.settings.default_role,
            status=UserStatus.ACTIVE,
            last_login_at=now,
            created_by=identity.user_id,
        )
        session = SessionUser(identity=identity, profile=profile)
        scoped = ScopedStore(self.store, session, self.clock)

        invitation = await find_user_by_email(self.context, scoped, identity.email)
        if invitation is not None and invitation.status != UserStatus.PENDING:
            raise InvalidRequest("A user with this email already exists")

        if invitation is None:
            written = await scoped.write(
                Collection.USERS, profile.id, profile.to_document(), create=True
            )
        else:
            # The invitation carries the team and project links made while
            # it was pending; they move to the signed-in identity.
            profile = profile.model_copy(
                update={
                    "display_name": invitation.display_name,
                    "role": invitation.role,
                    "created_by": invitation.created_by,
                    "managed_team_ids": invitation.managed_team_ids,
                    "team_ids": invitation.team_ids,
                    "managed_project_ids": invitation.managed_project_ids,
                    "project_ids": invitation.project_ids,
                }
            )
            session = SessionUser(identity=identity, profile=profile)
            scoped = ScopedStore(self.store, session, self.clock)
            written = await self._claim(scoped, invitation, profile)

        profile = User.from_document({**written, "id": profile.id})
        session = SessionUser(identity=identity, profile=profile)

        logger.info(
            "user_provisioned",
            user_id=profile.id,
            org_id=org_id,
            role=profile.role.value,
            claimed_invitation=invitation is not None,
        )
        await self.recorder.record(
            session,
            AuditAction.USER_CREATED,
            AuditEntityType.USER,
            profile.id,
            profile.display_name,
            after=profile,
        )
        return session

    async def _claim(
        self, scoped: ScopedStore, invitation: User, profile: User
    ) -> dict[str, Any]:
        """Replace a pending invitation with the signed-in user's profile.

        The profile is written first, then every team, project and task
        referencing the invitation id is re-pointed to the new id, and only
        then is the invitation removed. A failure part-way reverts the
        references already moved and the profile write.
        """
        query = self.context.builder(Collection.TASKS).compose(
            [Predicate.array_contains("assigneeIds", invitation.id)]
        )
        tasks = await scoped.list(Collection.TASKS, query)
        swaps = plan_transfer(
            invitation.id,
            profile.id,
            managed_team_ids=invitation.managed_team_ids,
            team_ids=invitation.team_ids,
            managed_project_ids=invitation.managed_project_ids,
            project_ids=invitation.project_ids,
            task_ids=[t["id"] for t in tasks],
        )

        async def write_profile() -> dict[str, Any]:
            return await scoped.write(
                Collection.USERS, profile.id, profile.to_document(), create=True
            )

        async def undo_profile() -> None:
            await scoped.delete(Collection.USERS, profile.id)

        written = await self.sync.transfer(scoped, swaps, write_profile, undo_profile)
        await scoped.delete(Collection.USERS, invitation.id)

        logger.info(
            "invitation_claimed",
            invitation_id=invitation.id,
            user_id=profile.id,
            references=len(swaps),
        )
        return written

    async def _touch(self, session: SessionUser) -> SessionUser:
        # Best effort; a failed lastLoginAt write never blocks the request.
        now = self.clock.now()
        last = session.profile.last_login_at
        if last is not None and now - last < LAST_LOGIN_REFRESH:
            return session

        try:
            await ScopedStore(self.store, session, self.clock).write(
                Collection.USERS, session.id, {"lastLoginAt": now}
            )
        except WorkAssignError as e:
            logger.warning("last_login_update_failed", user_id=session.id, error=str(e))
            return session

        profile = session.profile.model_copy(update={"last_login_at": now})
        return SessionUser(identity=session.identity, profile=profile)
