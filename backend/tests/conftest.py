"""
Pytest Configuration and Fixtures

Integration tests run the FastAPI app against an in-memory mongomock
database; unit tests only need the actor and model builders.
"""

import os
import tempfile
from datetime import datetime
from typing import Callable, Dict

os.environ.setdefault("LOGS_PATH", os.path.join(tempfile.gettempdir(), "printops-test-logs"))
os.environ.setdefault("REMINDER_SCHEDULER_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from printops.domain.enums import ProjectStatus, ProjectType
from printops.domain.models import ActorContext, Project, UserSnapshot
from printops.repositories import mongo_client
from printops.utils.jwt import JWTValidator

T0 = datetime(2026, 3, 2, 9, 0, 0)


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def admin() -> ActorContext:
    return ActorContext(
        user_id="u-admin", email="admin@example.com", display_name="Ada Admin", roles=["admin"]
    )


@pytest.fixture
def sales() -> ActorContext:
    return ActorContext(user_id="u-sales", email="sales@example.com", display_name="Sam Sales")


@pytest.fixture
def graphics() -> ActorContext:
    return ActorContext(
        user_id="u-graphics", email="graphics@example.com", display_name="Gia Graphics",
        departments=["graphics"]
    )


@pytest.fixture
def printer() -> ActorContext:
    return ActorContext(
        user_id="u-dtf", email="dtf@example.com", display_name="Dan Press", departments=["dtf"]
    )


@pytest.fixture
def outsider() -> ActorContext:
    return ActorContext(
        user_id="u-outsider", email="outsider@example.com", display_name="Oli Outsider",
        departments=["embroidery"]
    )


# =============================================================================
# Model builders
# =============================================================================

@pytest.fixture
def make_project(sales) -> Callable[..., Project]:
    """Build a project directly in a given state"""
    def _make(
        status: ProjectStatus = ProjectStatus.ORDER_CONFIRMED,
        project_type: ProjectType = ProjectType.STANDARD,
        **overrides
    ) -> Project:
        fields = dict(
            project_id="PRJ-1",
            order_id="ORD-1",
            project_name="Conference banners",
            project_type=project_type,
            status=status,
            lineage_id="LIN-1",
            version_number=1,
            departments=["graphics", "dtf"],
            created_by=UserSnapshot.from_actor(sales),
            created_at=T0,
            updated_at=T0,
        )
        fields.update(overrides)
        return Project(**fields)
    return _make


# =============================================================================
# Application
# =============================================================================

@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory database behind every repository"""
    client = mongomock.MongoClient()
    database = client["printops_test"]
    monkeypatch.setattr(mongo_client, "_client", client)
    monkeypatch.setattr(mongo_client, "_database", database)
    mongo_client.create_indexes()
    return database


@pytest.fixture
def client(db) -> TestClient:
    from printops.main import app
    return TestClient(app)


@pytest.fixture
def auth() -> Callable[[ActorContext], Dict[str, str]]:
    """Authorization header for an actor"""
    validator = JWTValidator()

    def _headers(actor: ActorContext) -> Dict[str, str]:
        return {"Authorization": f"Bearer {validator.issue_token(actor)}"}
    return _headers
