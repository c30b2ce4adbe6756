"""Dependency injection and application lifespan management."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Request

from workassign.adapters.audit import AuditRecorder, AuditRepository, LoggingSink
from workassign.adapters.identity import JwtIdentityProvider
from workassign.adapters.store import (
    FallbackDocumentStore,
    IndexCatalog,
    InMemoryDocumentStore,
    RestDocumentStore,
)
from workassign.adapters.store.rest import DEFAULT_BASE_URL
from workassign.core.domain_types import OrganizationSettings, UserRole
from workassign.core.interfaces import Clock, DocumentStore, SystemClock
from workassign.core.rbac import RoleAuthorizer
from workassign.services import (
    ProjectService,
    ServiceContext,
    SessionService,
    TaskService,
    TeamService,
    UserService,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def parse_indexes(text: str) -> IndexCatalog:
    """Parse provisioned composite indexes.

    The format is ``collection:field,field:orderField`` entries separated
    by semicolons, e.g. ``tasks:assigneeIds,status:dueDate``.
    """
    catalog = IndexCatalog()
    for entry in filter(None, (e.strip() for e in text.split(";"))):
        parts = entry.split(":")
        if len(parts) != 3:
            raise ValueError(f"Malformed composite index: {entry!r}")
        collection, fields, order_field = parts
        catalog.add(collection, [f.strip() for f in fields.split(",") if f.strip()], order_field)
    return catalog


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.jwt_secret = os.getenv("WORKASSIGN_JWT_SECRET", "dev-secret-change-me")
        self.default_org_id = os.getenv("WORKASSIGN_DEFAULT_ORG_ID", "default")

        # Hosted document store; in-memory when no project is configured
        self.store_project_id = os.getenv("WORKASSIGN_STORE_PROJECT_ID", "")
        self.store_url = os.getenv("WORKASSIGN_STORE_URL", DEFAULT_BASE_URL)
        self.store_fallback_url = os.getenv("WORKASSIGN_STORE_FALLBACK_URL", "")
        self.store_token = os.getenv("WORKASSIGN_STORE_TOKEN", "")
        self.store_timeout_seconds = float(os.getenv("WORKASSIGN_STORE_TIMEOUT_SECONDS", "10"))

        # Query planning
        self.client_sort_fallback = (
            os.getenv("WORKASSIGN_CLIENT_SORT_FALLBACK", "true").lower() == "true"
        )
        self.composite_indexes = os.getenv("WORKASSIGN_COMPOSITE_INDEXES", "")

        # Sign-up policy for organizations without a stored settings document
        self.allowed_email_domains = [
            d.strip().lower()
            for d in os.getenv("WORKASSIGN_ALLOWED_EMAIL_DOMAINS", "").split(",")
            if d.strip()
        ]
        self.default_role = UserRole(os.getenv("WORKASSIGN_DEFAULT_ROLE", "employee"))

        self.cors_origins = [
            o.strip()
            for o in os.getenv("WORKASSIGN_CORS_ORIGINS", "http://localhost:3000").split(",")
            if o.strip()
        ]


settings = Settings()


def build_store(config: Settings) -> DocumentStore:
    """Build the document store described by the settings."""
    if not config.store_project_id:
        logger.info("Using in-memory document store (no project configured)")
        return InMemoryDocumentStore()

    token = config.store_token

    async def token_provider() -> str | None:
        return token or None

    primary = RestDocumentStore(
        config.store_project_id,
        token_provider=token_provider,
        timeout_seconds=config.store_timeout_seconds,
        base_url=config.store_url,
    )
    if not config.store_fallback_url:
        logger.info(f"Using REST document store: {config.store_url}")
        return primary

    fallback = RestDocumentStore(
        config.store_project_id,
        token_provider=token_provider,
        timeout_seconds=config.store_timeout_seconds,
        base_url=config.store_fallback_url,
    )
    logger.info(
        f"Using REST document store: {config.store_url} "
        f"(fallback: {config.store_fallback_url})"
    )
    return FallbackDocumentStore(primary, fallback)


def configure_state(
    app: FastAPI,
    config: Settings,
    store: DocumentStore | None = None,
    clock: Clock | None = None,
) -> None:
    """Build every collaborator and store it in app state.

    Args:
        app: The FastAPI application.
        config: Settings to build from.
        store: Document store to use instead of the configured one.
        clock: Time source to use instead of the system clock.
    """
    clock = clock or SystemClock()
    store = store or build_store(config)
    authorizer = RoleAuthorizer()
    indexes = parse_indexes(config.composite_indexes)

    identity = JwtIdentityProvider(config.jwt_secret, clock)
    recorder = AuditRecorder(store, LoggingSink(), clock)
    context = ServiceContext(
        store=store,
        recorder=recorder,
        authorizer=authorizer,
        clock=clock,
        indexes=indexes,
        client_sort_fallback=config.client_sort_fallback,
    )
    default_settings = OrganizationSettings(
        allowed_email_domains=config.allowed_email_domains,
        default_role=config.default_role,
    )

    app.state.settings = config
    app.state.store = store
    app.state.identity = identity
    app.state.session_service = SessionService(
        context, identity, config.default_org_id, default_settings
    )
    app.state.task_service = TaskService(context)
    app.state.team_service = TeamService(context)
    app.state.project_service = ProjectService(context)
    app.state.user_service = UserService(context, identity)
    app.state.audit_repo = AuditRepository(
        store, authorizer, indexes, client_sort_fallback=config.client_sort_fallback
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    Args:
        app: The FastAPI application.

    Yields:
        None (context manager).
    """
    configure_state(app, settings)
    logger.info(f"Application started (default org: {settings.default_org_id})")

    yield

    logger.info("Application stopped")


def get_session_service(request: Request) -> SessionService:
    """Get the session service from app state.

    Args:
        request: The current request.

    Returns:
        The configured SessionService.
    """
    service: SessionService = request.app.state.session_service
    return service


def get_task_service(request: Request) -> TaskService:
    """Get the task service from app state."""
    service: TaskService = request.app.state.task_service
    return service


def get_team_service(request: Request) -> TeamService:
    """Get the team service from app state."""
    service: TeamService = request.app.state.team_service
    return service


def get_project_service(request: Request) -> ProjectService:
    """Get the project service from app state."""
    service: ProjectService = request.app.state.project_service
    return service


def get_user_service(request: Request) -> UserService:
    """Get the user service from app state."""
    service: UserService = request.app.state.user_service
    return service


def get_audit_repo(request: Request) -> AuditRepository:
    """Get the audit log repository from app state.

    Args:
        request: The current request.

    Returns:
        The configured AuditRepository.
    """
    repo: AuditRepository = request.app.state.audit_repo
    return repo
