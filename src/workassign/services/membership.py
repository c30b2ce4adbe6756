"""User back-references to teams and projects.

Teams and projects list their managers and members; each user lists the
teams and projects they manage or belong to. The two sides live in
different documents and the store offers no multi-document transaction
here, so they are kept in step by a two-step saga:

1. write the team/project document;
2. add/remove the id on each affected user document.

If step 2 fails part-way, the user updates already applied are reverted
in reverse order and then step 1 is undone. Compensation is itself
best-effort: a failure while compensating is logged and the two sides
may stay out of step until the next edit of the same team/project.

The same saga moves every reference from one user id to another when an
invitation is claimed on first sign-in: the new profile is written first,
then each team, project and task pointing at the invitation is re-pointed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TypeVar

import structlog

from workassign.adapters.store.query import Collection
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.exceptions import EntityNotFound
from workassign.core.rbac import ScopeKind

logger = structlog.get_logger()

T = TypeVar("T")

# (managers field, members field) on the user document
USER_FIELDS: dict[ScopeKind, tuple[str, str]] = {
    ScopeKind.TEAM: ("managedTeamIds", "teamIds"),
    ScopeKind.PROJECT: ("managedProjectIds", "projectIds"),
}


@dataclass(frozen=True)
class MembershipChange:
    """One back-reference to add to or remove from a user."""

    user_id: str
    field: str
    add: bool

    def inverse(self) -> MembershipChange:
        """The change that undoes this one."""
        return MembershipChange(self.user_id, self.field, not self.add)


def plan_changes(
    kind: ScopeKind,
    managers_before: Iterable[str],
    members_before: Iterable[str],
    managers_after: Iterable[str],
    members_after: Iterable[str],
) -> list[MembershipChange]:
    """Back-reference changes implied by a managers/members edit.

    Returns:
        Removals first, then additions, each in input order.
    """
    managers_field, members_field = USER_FIELDS[kind]
    removals: list[MembershipChange] = []
    additions: list[MembershipChange] = []
    for field_name, before, after in (
        (managers_field, list(managers_before), list(managers_after)),
        (members_field, list(members_before), list(members_after)),
    ):
        removals.extend(
            MembershipChange(u, field_name, False) for u in dict.fromkeys(before) if u not in after
        )
        additions.extend(
            MembershipChange(u, field_name, True) for u in dict.fromkeys(after) if u not in before
        )
    return removals + additions


@dataclass(frozen=True)
class ReferenceSwap:
    """Replace one user id with another in an array field of a document."""

    collection: Collection
    doc_id: str
    field: str
    old_id: str
    new_id: str

    def inverse(self) -> ReferenceSwap:
        """The swap that undoes this one."""
        return ReferenceSwap(self.collection, self.doc_id, self.field, self.new_id, self.old_id)


def plan_transfer(
    old_id: str,
    new_id: str,
    managed_team_ids: Iterable[str] = (),
    team_ids: Iterable[str] = (),
    managed_project_ids: Iterable[str] = (),
    project_ids: Iterable[str] = (),
    task_ids: Iterable[str] = (),
) -> list[ReferenceSwap]:
    """Swaps that move every reference to ``old_id`` over to ``new_id``."""
    targets: list[tuple[Collection, Iterable[str], str]] = [
        (Collection.TEAMS, managed_team_ids, "managerIds"),
        (Collection.TEAMS, team_ids, "memberIds"),
        (Collection.PROJECTS, managed_project_ids, "managerIds"),
        (Collection.PROJECTS, project_ids, "memberIds"),
        (Collection.TASKS, task_ids, "assigneeIds"),
    ]
    return [
        ReferenceSwap(collection, doc_id, field_name, old_id, new_id)
        for collection, doc_ids, field_name in targets
        for doc_id in dict.fromkeys(doc_ids)
    ]


class MembershipSync:
    """Runs an entity write together with its back-reference updates."""

    async def run(
        self,
        scoped: ScopedStore,
        scope_id: str,
        changes: list[MembershipChange],
        write_entity: Callable[[], Awaitable[T]],
        undo_entity: Callable[[], Awaitable[object]],
    ) -> T:
        """Apply the entity write, then every back-reference change.

        Args:
            scoped: Store bound to the actor's organization.
            scope_id: Team or project id being referenced.
            changes: Back-reference changes to apply after the write.
            write_entity: Step 1, the team/project write.
            undo_entity: Reverts step 1.

        Returns:
            Whatever write_entity returned.

        Raises:
            Exception: The error that interrupted step 2, after compensation.
        """
        result = await write_entity()

        applied: list[MembershipChange] = []
        try:
            for change in changes:
                if await self._apply(scoped, scope_id, change):
                    applied.append(change)
        except Exception as e:
            logger.error(
                "membership_sync_failed",
                scope_id=scope_id,
                applied=len(applied),
                error=str(e),
            )
            await self._compensate(scoped, scope_id, applied, undo_entity)
            raise

        if changes:
            logger.info("membership_synced", scope_id=scope_id, changes=len(changes))
        return result

    async def _apply(self, scoped: ScopedStore, scope_id: str, change: MembershipChange) -> bool:
        # Only changes that modified a document are compensated.
        if change.add:
            return await scoped.add_to_array(
                Collection.USERS, change.user_id, change.field, [scope_id]
            )
        try:
            return await scoped.remove_from_array(
                Collection.USERS, change.user_id, change.field, [scope_id]
            )
        except EntityNotFound:
            # nothing to unlink on a user that no longer exists
            return False

    async def _compensate(
        self,
        scoped: ScopedStore,
        scope_id: str,
        applied: list[MembershipChange],
        undo_entity: Callable[[], Awaitable[object]],
    ) -> None:
        for change in reversed(applied):
            try:
                await self._apply(scoped, scope_id, change.inverse())
            except Exception as e:
                logger.error(
                    "membership_compensation_failed",
                    scope_id=scope_id,
                    user_id=change.user_id,
                    field=change.field,
                    error=str(e),
                )
        try:
            await undo_entity()
        except Exception as e:
            logger.error("membership_entity_rollback_failed", scope_id=scope_id, error=str(e))

    async def transfer(
        self,
        scoped: ScopedStore,
        swaps: list[ReferenceSwap],
        write_user: Callable[[], Awaitable[T]],
        undo_user: Callable[[], Awaitable[object]],
    ) -> T:
        """Write the new user document, then re-point every reference to it.

        Args:
            scoped: Store bound to the new user's organization.
            swaps: References to move, from plan_transfer.
            write_user: Step 1, the new user document write.
            undo_user: Reverts step 1.

        Returns:
            Whatever write_user returned.

        Raises:
            Exception: The error that interrupted step 2, after compensation.
        """
        result = await write_user()

        applied: list[ReferenceSwap] = []
        try:
            for swap in swaps:
                if await self._swap(scoped, swap):
                    applied.append(swap)
        except Exception as e:
            logger.error("reference_transfer_failed", applied=len(applied), error=str(e))
            for swap in reversed(applied):
                try:
                    await self._swap(scoped, swap.inverse())
                except Exception as undo_error:
                    logger.error(
                        "reference_transfer_compensation_failed",
                        collection=swap.collection.value,
                        doc_id=swap.doc_id,
                        field=swap.field,
                        error=str(undo_error),
                    )
            try:
                await undo_user()
            except Exception as undo_error:
                logger.error("reference_transfer_user_rollback_failed", error=str(undo_error))
            raise

        if applied:
            logger.info("references_transferred", changes=len(applied))
        return result

    async def _swap(self, scoped: ScopedStore, swap: ReferenceSwap) -> bool:
        try:
            return await scoped.replace_in_array(
                swap.collection, swap.doc_id, swap.field, swap.old_id, swap.new_id
            )
        except EntityNotFound:
            # stale back-reference to a deleted team, project or task
            return False
