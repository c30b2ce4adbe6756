"""API authentication dependencies."""

from workassign.entrypoints.api.middleware.auth import (
    CurrentUser,
    bearer_scheme,
    get_current_user,
)

__all__ = ["CurrentUser", "bearer_scheme", "get_current_user"]
