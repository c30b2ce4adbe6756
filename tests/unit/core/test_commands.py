"""Unit tests for mutation commands."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from workassign.core.commands import (
    CreateCommentCommand,
    CreateTaskCommand,
    CreateUserCommand,
    UpdateTaskCommand,
    UpdateTaskStatusCommand,
)
from workassign.core.domain_types import TaskPriority, TaskStatus


class TestCommands:
    """Tests for command models."""

    def test_changes_only_lists_provided_fields(self) -> None:
        """Test that omitted fields are not part of the change set."""
        command = UpdateTaskCommand(task_id="t1", title="New title")

        assert command.changes() == {"title": "New title"}

    def test_explicit_none_means_clear(self) -> None:
        """Test that an explicit None is kept as a clear request."""
        command = UpdateTaskCommand.model_validate({"taskId": "t1", "dueDate": None})

        assert command.changes() == {"due_date": None}

    def test_status_is_not_editable(self) -> None:
        """Test that status cannot ride along with an edit."""
        with pytest.raises(ValidationError):
            UpdateTaskCommand.model_validate({"taskId": "t1", "status": "done"})

    def test_transition_request_shape(self) -> None:
        """Test the camelCase transition request."""
        command = UpdateTaskStatusCommand.model_validate(
            {"taskId": "t1", "requestedStatus": "in_progress"}
        )

        assert command.task_id == "t1"
        assert command.requested_status == TaskStatus.IN_PROGRESS

    def test_create_task_defaults(self) -> None:
        """Test create defaults."""
        command = CreateTaskCommand(title="Ship it")

        assert command.priority == TaskPriority.MEDIUM
        assert command.assignee_ids == []

    def test_blank_comment_rejected(self) -> None:
        """Test that whitespace-only comments are invalid."""
        with pytest.raises(ValidationError):
            CreateCommentCommand(task_id="t1", content="   ")

    def test_comment_content_is_stripped(self) -> None:
        """Test comment normalization."""
        assert CreateCommentCommand(task_id="t1", content=" hi ").content == "hi"

    def test_user_email_normalized(self) -> None:
        """Test that invitation emails are trimmed and lowercased."""
        command = CreateUserCommand(email=" Dana@Acme.TEST ", display_name="Dana")

        assert command.email == "dana@acme.test"

    def test_user_email_requires_at(self) -> None:
        """Test that an email without '@' is rejected."""
        with pytest.raises(ValidationError):
            CreateUserCommand(email="dana.acme.test", display_name="Dana")
