"""Unit tests for audit change computation."""

from __future__ import annotations

from workassign.adapters.audit import FieldChange, compute_changes
from workassign.core.domain_types import TaskStatus
from tests.fixtures.domain_objects import NOW, make_task


class TestComputeChanges:
    """Tests for compute_changes."""

    def test_creation_reports_every_field(self) -> None:
        """Test that a missing before snapshot reports all fields."""
        changes = compute_changes(None, make_task())

        assert changes["title"] == FieldChange(before=None, after="Write quarterly report")
        assert changes["status"] == FieldChange(before=None, after="backlog")
        assert "id" not in changes

    def test_deletion_reports_every_field(self) -> None:
        """Test that a missing after snapshot reports all fields as removed."""
        changes = compute_changes(make_task(), None)

        assert changes["title"] == FieldChange(before="Write quarterly report", after=None)

    def test_update_reports_only_changed_fields(self) -> None:
        """Test that unchanged fields and updatedAt are left out."""
        before = make_task(updated_at=NOW)
        after = before.model_copy(
            update={"status": TaskStatus.IN_PROGRESS, "updated_at": NOW.replace(hour=11)}
        )

        changes = compute_changes(before, after)

        assert changes == {"status": FieldChange(before="backlog", after="in_progress")}

    def test_none_and_absent_are_equal(self) -> None:
        """Test that clearing an unset optional is not a change."""
        assert compute_changes({"description": None}, {}) == {}

    def test_list_order_matters(self) -> None:
        """Test element-wise comparison of lists."""
        changes = compute_changes({"assigneeIds": ["a", "b"]}, {"assigneeIds": ["b", "a"]})

        assert changes["assigneeIds"].after == ["b", "a"]

    def test_enums_compare_by_value(self) -> None:
        """Test that an enum and its stored value are equal."""
        assert compute_changes({"status": TaskStatus.DONE}, {"status": "done"}) == {}

    def test_fields_are_sorted(self) -> None:
        """Test the stable ordering of reported fields."""
        changes = compute_changes({}, {"title": "x", "description": "y", "tags": ["z"]})

        assert list(changes) == ["description", "tags", "title"]
