"""Task service: CRUD, status workflow, checklist and comments."""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from workassign.adapters.audit.types import AuditAction, AuditEntityType
from workassign.adapters.store.query import Collection, Operator, Predicate
from workassign.adapters.store.scoped import ScopedStore
from workassign.core.commands import (
    CreateCommentCommand,
    CreateTaskCommand,
    UpdateTaskCommand,
    UpdateTaskStatusCommand,
)
from workassign.core.domain_types import (
    Comment,
    SessionUser,
    Task,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from workassign.core.exceptions import EntityNotFound, InvalidRequest, PermissionDenied
from workassign.core.rbac import Action, CollectionTarget, has_minimum_role
from workassign.core.workflow import TaskWorkflow
from workassign.services.base import ServiceContext

logger = structlog.get_logger()

OPEN_STATUSES = (TaskStatus.BACKLOG, TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED)

# Task fields that may not be cleared by an update.
REQUIRED_FIELDS = frozenset({"title", "assignee_ids", "priority", "tags"})

# Fields assignees may edit without a manager
CHECKLIST_FIELDS = frozenset({"checklist_items"})


class TaskFilters(BaseModel):
    """Filters for task listings. All filters are AND-ed."""

    model_config = ConfigDict(frozen=True)

    assignee_id: str | None = None
    project_id: str | None = None
    team_id: str | None = None
    status: list[TaskStatus] | None = None
    priority: TaskPriority | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None
    limit: int | None = None
    start_after: str | None = None


class TaskService:
    """Task operations. Every mutation runs authorize, write, then record."""

    def __init__(self, context: ServiceContext, workflow: TaskWorkflow | None = None) -> None:
        """Initialize the service.

        Args:
            context: Shared service collaborators.
            workflow: Task status state machine.
        """
        self.context = context
        self.workflow = workflow or TaskWorkflow(context.clock)

    async def _load(self, scoped: ScopedStore, task_id: str) -> Task:
        document = await scoped.read_required(Collection.TASKS, task_id, entity_type="task")
        task: Task = Task.from_document(document)
        return task

    async def get(self, actor: SessionUser, task_id: str) -> Task:
        """Get a task the actor may read."""
        task = await self._load(self.context.scoped(actor), task_id)
        self.context.authorizer.authorize(actor, Action.READ, task)
        return task

    def _visible_assignee(self, actor: SessionUser, assignee_id: str | None) -> str | None:
        # Employees only ever see tasks assigned to them.
        if has_minimum_role(actor.role, UserRole.MANAGER):
            return assignee_id
        if assignee_id is not None and assignee_id != actor.id:
            raise PermissionDenied(Action.READ.value, required_role=UserRole.MANAGER.value)
        return actor.id

    async def list(self, actor: SessionUser, filters: TaskFilters | None = None) -> list[Task]:
        """List tasks, ordered by due date.

        Args:
            actor: Requesting user.
            filters: Optional filters.

        Returns:
            Tasks the actor may read.
        """
        self.context.authorizer.authorize(actor, Action.READ, CollectionTarget("task"))
        filters = filters or TaskFilters()

        assignee_id = self._visible_assignee(actor, filters.assignee_id)
        predicates: list[Predicate] = []
        if assignee_id:
            predicates.append(Predicate.array_contains("assigneeIds", assignee_id))
        if filters.project_id:
            predicates.append(Predicate.eq("projectId", filters.project_id))
        if filters.team_id:
            predicates.append(Predicate.eq("teamId", filters.team_id))
        if filters.status:
            if len(filters.status) == 1:
                predicates.append(Predicate.eq("status", filters.status[0]))
            else:
                predicates.append(Predicate.is_in("status", filters.status))
        if filters.priority:
            predicates.append(Predicate.eq("priority", filters.priority))
        if filters.due_before:
            predicates.append(Predicate.range("dueDate", Operator.LE, filters.due_before))
        if filters.due_after:
            predicates.append(Predicate.range("dueDate", Operator.GE, filters.due_after))

        query = self.context.builder(Collection.TASKS).compose(
            predicates, limit=filters.limit, start_after=filters.start_after
        )
        documents = await self.context.scoped(actor).list(Collection.TASKS, query)
        return [Task.from_document(d) for d in documents]

    async def list_overdue(self, actor: SessionUser, assignee_id: str | None = None) -> list[Task]:
        """Open tasks whose due date has passed, oldest due first."""
        self.context.authorizer.authorize(actor, Action.READ, CollectionTarget("task"))
        assignee_id = self._visible_assignee(actor, assignee_id)

        predicates = [
            Predicate.is_in("status", OPEN_STATUSES),
            Predicate.range("dueDate", Operator.LT, self.context.clock.now()),
        ]
        if assignee_id:
            predicates.insert(0, Predicate.array_contains("assigneeIds", assignee_id))

        query = self.context.builder(Collection.TASKS).compose(predicates)
        documents = await self.context.scoped(actor).list(Collection.TASKS, query)
        return [Task.from_document(d) for d in documents]

    async def create(self, actor: SessionUser, command: CreateTaskCommand) -> Task:
        """Create a task in backlog."""
        self.context.authorizer.authorize(actor, Action.CREATE, CollectionTarget("task"))
        scoped = self.context.scoped(actor)

        task_id = scoped.new_id()
        draft = Task(
            id=task_id,
            org_id=actor.org_id,
            status=TaskStatus.BACKLOG,
            created_by=actor.id,
            **command.model_dump(),
        )
        written = await scoped.write(Collection.TASKS, task_id, draft.to_document(), create=True)
        task: Task = Task.from_document({**written, "id": task_id})

        logger.info("task_created", task_id=task_id, org_id=actor.org_id, actor_id=actor.id)
        await self.context.recorder.record(
            actor, AuditAction.TASK_CREATED, AuditEntityType.TASK, task_id, task.title, after=task
        )
        return task

    async def update(self, actor: SessionUser, command: UpdateTaskCommand) -> Task:
        """Edit task details. Status is not editable here.

        Assignees may edit the checklist; every other field needs a manager.

        Raises:
            PermissionDenied: If the actor may not make these changes.
            InvalidRequest: If a required field would be cleared.
        """
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, command.task_id)
        changes = command.changes()
        action = Action.EDIT_CHECKLIST if set(changes) <= CHECKLIST_FIELDS else Action.UPDATE
        self.context.authorizer.authorize(actor, action, before)

        cleared = sorted(k for k in REQUIRED_FIELDS if k in changes and changes[k] is None)
        if cleared:
            raise InvalidRequest(f"Cannot clear required fields: {', '.join(cleared)}")
        if not changes:
            return before

        await scoped.write(
            Collection.TASKS, before.id, {to_camel(k): v for k, v in changes.items()}
        )
        after = await self._load(scoped, before.id)

        logger.info("task_updated", task_id=before.id, fields=sorted(changes))
        await self.context.recorder.record(
            actor,
            AuditAction.TASK_UPDATED,
            AuditEntityType.TASK,
            before.id,
            after.title,
            before=before,
            after=after,
        )
        return after

    async def transition(self, actor: SessionUser, command: UpdateTaskStatusCommand) -> Task:
        """Move a task to a new status.

        Authorization and the transition table are both checked before
        anything is written. Concurrent transitions of the same task are
        last-write-wins; each one is audited.

        Raises:
            PermissionDenied: If the actor is neither a manager nor an assignee.
            InvalidTransition: If the move is not in the transition table.
        """
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, command.task_id)
        self.context.authorizer.authorize(actor, Action.TRANSITION, before)
        moved = self.workflow.transition(before, command.requested_status)

        patch: dict[str, object] = {"status": moved.status}
        if moved.completed_at != before.completed_at:
            patch["completedAt"] = moved.completed_at
        written = await scoped.write(Collection.TASKS, before.id, patch)
        after = moved.model_copy(update={"updated_at": written["updatedAt"]})

        logger.info(
            "task_transitioned",
            task_id=before.id,
            from_status=before.status.value,
            to_status=after.status.value,
            actor_id=actor.id,
        )
        await self.context.recorder.record(
            actor,
            AuditAction.TASK_UPDATED,
            AuditEntityType.TASK,
            before.id,
            before.title,
            before=before,
            after=after,
        )
        return after

    async def delete(self, actor: SessionUser, task_id: str) -> None:
        """Delete a task and its comments."""
        scoped = self.context.scoped(actor)
        task = await self._load(scoped, task_id)
        self.context.authorizer.authorize(actor, Action.DELETE, task)

        query = self.context.builder(Collection.COMMENTS).compose()
        for comment in await scoped.list(Collection.COMMENTS, query, parent_id=task_id):
            await scoped.delete(Collection.COMMENTS, comment["id"], parent_id=task_id)
        await scoped.delete(Collection.TASKS, task_id)

        logger.info("task_deleted", task_id=task_id, actor_id=actor.id)
        await self.context.recorder.record(
            actor, AuditAction.TASK_DELETED, AuditEntityType.TASK, task_id, task.title, before=task
        )

    async def toggle_checklist_item(self, actor: SessionUser, task_id: str, item_id: str) -> Task:
        """Flip a checklist item, stamping who completed it and when."""
        scoped = self.context.scoped(actor)
        before = await self._load(scoped, task_id)
        self.context.authorizer.authorize(actor, Action.EDIT_CHECKLIST, before)

        items = list(before.checklist_items or [])
        for index, item in enumerate(items):
            if item.id == item_id:
                break
        else:
            raise EntityNotFound("checklist item", item_id)

        completed = not items[index].completed
        items[index] = items[index].model_copy(
            update={
                "completed": completed,
                "completed_at": self.context.clock.now() if completed else None,
                "completed_by": actor.id if completed else None,
            }
        )
        await scoped.write(Collection.TASKS, task_id, {"checklistItems": items})
        after = await self._load(scoped, task_id)

        await self.context.recorder.record(
            actor,
            AuditAction.TASK_UPDATED,
            AuditEntityType.TASK,
            task_id,
            after.title,
            before=before,
            after=after,
        )
        return after

    async def list_comments(self, actor: SessionUser, task_id: str) -> list[Comment]:
        """Comments on a task, oldest first."""
        task = await self.get(actor, task_id)
        query = self.context.builder(Collection.COMMENTS).compose()
        documents = await self.context.scoped(actor).list(
            Collection.COMMENTS, query, parent_id=task.id
        )
        return [Comment.from_document(d) for d in documents]

    async def add_comment(self, actor: SessionUser, command: CreateCommentCommand) -> Comment:
        """Comment on a task the actor may read."""
        scoped = self.context.scoped(actor)
        task = await self._load(scoped, command.task_id)
        self.context.authorizer.authorize(actor, Action.COMMENT, task)

        comment_id = scoped.new_id()
        draft = Comment(
            id=comment_id,
            org_id=actor.org_id,
            task_id=task.id,
            content=command.content,
            author_id=actor.id,
            mentions=command.mentions,
        )
        written = await scoped.write(
            Collection.COMMENTS, comment_id, draft.to_document(), create=True, parent_id=task.id
        )
        logger.info("comment_created", task_id=task.id, comment_id=comment_id)
        comment: Comment = Comment.from_document({**written, "id": comment_id})
        return comment

    async def delete_comment(self, actor: SessionUser, task_id: str, comment_id: str) -> None:
        """Delete a comment. Authors and managers may delete."""
        scoped = self.context.scoped(actor)
        task = await self._load(scoped, task_id)
        document = await scoped.read_required(
            Collection.COMMENTS, comment_id, parent_id=task.id, entity_type="comment"
        )
        comment = Comment.from_document(document)
        self.context.authorizer.authorize(actor, Action.DELETE, comment)

        await scoped.delete(Collection.COMMENTS, comment_id, parent_id=task.id)
        logger.info("comment_deleted", task_id=task.id, comment_id=comment_id, actor_id=actor.id)
