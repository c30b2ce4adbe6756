"""Task API routes."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from workassign.core.commands import (
    CreateCommentCommand,
    CreateTaskCommand,
    UpdateTaskCommand,
    UpdateTaskStatusCommand,
)
from workassign.core.domain_types import Comment, Task, TaskPriority, TaskStatus
from workassign.entrypoints.api.deps import get_task_service
from workassign.entrypoints.api.middleware.auth import CurrentUser
from workassign.services import TaskFilters, TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])

TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


class TaskListResponse(BaseModel):
    """Response for listing tasks."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tasks: list[Task]
    total: int
    next_start_after: str | None = None


class CommentListResponse(BaseModel):
    """Response for listing comments."""

    comments: list[Comment]
    total: int


class CommentCreate(BaseModel):
    """Comment creation request."""

    content: str
    mentions: list[str] | None = None


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    actor: CurrentUser,
    service: TaskServiceDep,
    assignee_id: str | None = None,
    project_id: str | None = None,
    team_id: str | None = None,
    status_filter: Annotated[list[TaskStatus] | None, Query(alias="status")] = None,
    priority: TaskPriority | None = None,
    due_before: datetime | None = None,
    due_after: datetime | None = None,
    limit: Annotated[int | None, Query(ge=1, le=200)] = None,
    start_after: str | None = None,
) -> TaskListResponse:
    """List tasks ordered by due date.

    Employees only ever see their own tasks; asking for someone else's
    is rejected.
    """
    filters = TaskFilters(
        assignee_id=assignee_id,
        project_id=project_id,
        team_id=team_id,
        status=status_filter,
        priority=priority,
        due_before=due_before,
        due_after=due_after,
        limit=limit,
        start_after=start_after,
    )
    tasks = await service.list(actor, filters)
    next_start_after = tasks[-1].id if limit is not None and len(tasks) == limit else None
    return TaskListResponse(tasks=tasks, total=len(tasks), next_start_after=next_start_after)


@router.get("/overdue", response_model=TaskListResponse)
async def list_overdue_tasks(
    actor: CurrentUser,
    service: TaskServiceDep,
    assignee_id: str | None = None,
) -> TaskListResponse:
    """List open tasks whose due date has passed."""
    tasks = await service.list_overdue(actor, assignee_id)
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.post("/", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    body: CreateTaskCommand,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Task:
    """Create a task in backlog.

    Requires manager role or higher.
    """
    return await service.create(actor, body)


@router.post("/transition", response_model=Task)
async def transition_task(
    body: UpdateTaskStatusCommand,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Task:
    """Move a task to another status along the workflow."""
    return await service.transition(actor, body)


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Task:
    """Get a task by ID."""
    return await service.get(actor, task_id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    body: dict[str, Any],
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Task:
    """Edit task details. Status is changed through /tasks/transition."""
    command = UpdateTaskCommand.model_validate({**body, "taskId": task_id})
    return await service.update(actor, command)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Response:
    """Delete a task and its comments."""
    await service.delete(actor, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/checklist/{item_id}/toggle", response_model=Task)
async def toggle_checklist_item(
    task_id: str,
    item_id: str,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Task:
    """Mark a checklist item done, or undone again."""
    return await service.toggle_checklist_item(actor, task_id, item_id)


@router.get("/{task_id}/comments", response_model=CommentListResponse)
async def list_comments(
    task_id: str,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> CommentListResponse:
    """List a task's comments, oldest first."""
    comments = await service.list_comments(actor, task_id)
    return CommentListResponse(comments=comments, total=len(comments))


@router.post(
    "/{task_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    task_id: str,
    body: CommentCreate,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Comment:
    """Comment on a task."""
    command = CreateCommentCommand(task_id=task_id, content=body.content, mentions=body.mentions)
    return await service.add_comment(actor, command)


@router.delete("/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    task_id: str,
    comment_id: str,
    actor: CurrentUser,
    service: TaskServiceDep,
) -> Response:
    """Delete a comment. Authors may delete their own."""
    await service.delete_comment(actor, task_id, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
