"""Pytest fixtures for VEX backend tests."""

import datetime as dt
import os

# Must be set before app.core.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_graph_client_factory
from app.core.config import settings
from app.core.security import issue_session_token
from app.db.session import Base, get_db
from app.models.calendar_event import CalendarEvent
from app.models.communication import Communication, MilestoneComment, StatusChange
from app.models.project import Milestone, Project
from app.models.project_file import ProjectFile
from app.models.template import ProjectTemplate, TemplateMilestone
from app.models.user import User
from app.services.sharepoint import GraphDriveClient

# Ensure all models are loaded for create_all
import app.models  # noqa: F401


def memory_engine():
    # One shared connection so the TestClient thread sees the same in-memory DB.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def engine():
    engine = memory_engine()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory):
    """Create an in-memory SQLite DB with all tables for tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def add_user(db, email, *, role="user", provider="credentials", access_token=None, password_hash=None):
    user = User(
        email=email,
        name=email.split("@")[0].title(),
        role=role,
        provider=provider,
        access_token=access_token,
        password_hash=password_hash,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db):
    return add_user(db, "admin@vex.test", role="admin")


@pytest.fixture()
def sample_data(db, admin_user):
    """One row in every domain table, wired together through their foreign keys."""
    template = ProjectTemplate(name="Standard", description="Default", is_default=True)
    template.template_milestones = [TemplateMilestone(name="Kickoff", order=0)]
    db.add(template)
    db.flush()

    project = Project(name="Harbor Tower", city="Tampa", state="FL", user_id=admin_user.id, template_id=template.id)
    db.add(project)
    db.flush()

    milestone = Milestone(
        name="Kickoff",
        project_id=project.id,
        due_date=dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.timezone.utc),
    )
    db.add(milestone)
    db.flush()

    db.add_all(
        [
            ProjectFile(name="Floor plan", file_url="https://files.test/plan.pdf", project_id=project.id, milestone_id=milestone.id),
            Communication(type="email", subject="Quote", content="Sent quote", project_id=project.id, user_id=admin_user.id),
            MilestoneComment(content="Scheduled", milestone_id=milestone.id, user_id=admin_user.id),
            StatusChange(
                entity_type="milestone",
                entity_id=milestone.id,
                old_status="pending",
                new_status="in_progress",
                project_id=project.id,
                milestone_id=milestone.id,
                user_id=admin_user.id,
            ),
            CalendarEvent(
                title="Site visit",
                start_date=dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc),
                user_id=admin_user.id,
                project_id=project.id,
            ),
        ]
    )
    db.commit()
    return {"user": admin_user, "template": template, "project": project, "milestone": milestone}


@pytest.fixture()
def graph_handler():
    """
    Replace `graph_handler.handler` to script Microsoft Graph responses for a test.
    Defaults to failing every request.
    """

    class _Graph:
        def __init__(self):
            self.requests = []
            self.handler = lambda request: httpx.Response(503, json={"error": {"code": "serviceNotAvailable"}})

        def __call__(self, request):
            self.requests.append(request)
            return self.handler(request)

    return _Graph()


@pytest.fixture()
def graph_client_factory(graph_handler):
    def factory(access_token):
        return GraphDriveClient(access_token, transport=httpx.MockTransport(graph_handler))

    return factory


@pytest.fixture()
def client(session_factory, graph_client_factory):
    from app.main import create_app

    api = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api.dependency_overrides[get_db] = _get_db
    api.dependency_overrides[get_graph_client_factory] = lambda: graph_client_factory
    # Not used as a context manager: startup seeding is not wanted here.
    return TestClient(api)


def login_as(client, user):
    client.cookies.set(settings.jwt_cookie_name, issue_session_token(user.id))
    return client
