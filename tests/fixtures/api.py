"""Application and client fixtures for route tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from workassign.adapters.store import InMemoryDocumentStore
from workassign.adapters.store.query import Collection
from workassign.core.auth.jwt import create_id_token
from workassign.core.domain_types import SessionUser, Task, Team
from workassign.entrypoints.api.deps import Settings, configure_state
from workassign.entrypoints.api.errors import register_exception_handlers
from workassign.entrypoints.api.routes import api_router
from tests.fixtures.domain_objects import ORG_ID, FixedClock
from tests.fixtures.mocks import seed, seed_actors

__all__ = [
    "AuthHeaders",
    "api_app",
    "api_client",
    "api_settings",
    "auth",
    "seeded_org",
]

AuthHeaders = Callable[..., dict[str, str]]


@pytest.fixture
def api_settings() -> Settings:
    """Return settings loaded from the test environment."""
    return Settings()


@pytest.fixture
def api_app(
    memory_store: InMemoryDocumentStore, clock: FixedClock, api_settings: Settings
) -> FastAPI:
    """Create an app wired to the memory store."""
    app = FastAPI(redirect_slashes=False)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")
    configure_state(app, api_settings, store=memory_store, clock=clock)
    return app


@pytest.fixture
def api_client(api_app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(api_app)


@pytest.fixture
def auth(api_settings: Settings) -> AuthHeaders:
    """Return a factory for bearer headers of a user."""

    def headers(user_id: str, org_id: str = ORG_ID) -> dict[str, str]:
        token = create_id_token(
            api_settings.jwt_secret, user_id, f"{user_id}@acme.test", org_id=org_id
        )
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture
async def seeded_org(
    memory_store: InMemoryDocumentStore,
    admin: SessionUser,
    manager: SessionUser,
    employee: SessionUser,
    sample_task: Task,
    sample_team: Team,
) -> None:
    """Store the actors, the sample task and the sample team."""
    await seed_actors(memory_store, admin, manager, employee)
    await seed(memory_store, Collection.TASKS, sample_task)
    await seed(memory_store, Collection.TEAMS, sample_team)
