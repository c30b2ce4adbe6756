"""Task status state machine."""

from __future__ import annotations

import structlog

from workassign.core.domain_types import Task, TaskStatus
from workassign.core.exceptions import InvalidTransition
from workassign.core.interfaces import Clock, SystemClock

logger = structlog.get_logger()

# current status -> statuses it may move to next; done is terminal
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.BACKLOG: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DONE}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.BLOCKED, TaskStatus.DONE}),
    TaskStatus.BLOCKED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.DONE: frozenset(),
}


class TaskWorkflow:
    """Governs task status changes and the fields derived from them.

    Moving into ``done`` stamps ``completed_at``. No transition ever clears
    ``completed_at`` once set.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        """Initialize the workflow.

        Args:
            clock: Time source for completion timestamps.
        """
        self._clock = clock or SystemClock()

    @staticmethod
    def allowed_transitions(status: TaskStatus | str) -> frozenset[TaskStatus]:
        """Statuses reachable from the given status."""
        return TRANSITIONS[TaskStatus(status)]

    @staticmethod
    def can_transition(current: TaskStatus | str, requested: TaskStatus | str) -> bool:
        """Check whether a transition is in the table."""
        return TaskStatus(requested) in TRANSITIONS[TaskStatus(current)]

    def transition(self, task: Task, requested: TaskStatus | str) -> Task:
        """Move a task to a new status.

        Args:
            task: Task in its current state.
            requested: Status to move to.

        Returns:
            A new Task with the status (and completed_at, for done) applied.

        Raises:
            InvalidTransition: If requested is not allowed from the current
                status, including same-state requests and anything from done.
        """
        current = TaskStatus(task.status)
        target = TaskStatus(requested)

        if not self.can_transition(current, target):
            logger.info(
                "task_transition_rejected",
                task_id=task.id,
                current=current.value,
                requested=target.value,
            )
            raise InvalidTransition(current.value, target.value)

        update: dict[str, object] = {"status": target}
        if target == TaskStatus.DONE:
            update["completed_at"] = self._clock.now()

        return task.model_copy(update=update)
