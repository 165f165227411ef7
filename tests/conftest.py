import os
import sys
import uuid

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

# Must be set before config is imported
os.environ.setdefault("VALKEY_HOST", "")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("LOG_FILENAME", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from data.database import Base, get_db, Organization, Project, OnboardingConfig, Experiment
from main import app
from services.cache import get_cache_client, get_mock_cache_client
import celery_tasks.event_tasks as event_tasks
from celery_config import celery_app

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency override for DB
def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

# Shared in-memory cache for the whole test run
TEST_CACHE = get_mock_cache_client()
app.dependency_overrides[get_cache_client] = lambda: TEST_CACHE

# Celery runs eagerly (config may have been imported before the env vars above); point the worker at the test database too
celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True
event_tasks.SessionLocal = TestingSessionLocal

SCREENS_A = [{"id": "welcome", "type": "noboard_screen", "elements": [
    {"id": "title", "type": "text", "style": {}, "props": {"text": "Welcome A"}},
]}]
SCREENS_B = [{"id": "welcome", "type": "noboard_screen", "elements": [
    {"id": "title", "type": "text", "style": {}, "props": {"text": "Welcome B"}},
]}]


@pytest.fixture(autouse=True, scope="session")
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()

@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c

@pytest.fixture
def org(db_session):
    """A fresh organization with test, live and legacy keys plus two published-ready flows."""
    suffix = uuid.uuid4().hex[:10]
    organization = Organization(
        name=f"org-{suffix}",
        api_key=f"legacy_{suffix}",
        test_api_key=f"nb_test_{suffix}",
        production_api_key=f"nb_live_{suffix}",
    )
    db_session.add(organization)
    db_session.flush()

    flow_a = OnboardingConfig(organization_id=organization.id, name="Flow A", version="1.2.0", environment="test",
                              is_published=True, config={"version": "1.2.0", "screens": SCREENS_A})
    flow_b = OnboardingConfig(organization_id=organization.id, name="Flow B", environment="test",
                              is_published=False, config={"version": "1.0.0", "screens": SCREENS_B})
    db_session.add_all([flow_a, flow_b])
    db_session.commit()

    return {
        "id": organization.id,
        "headers": {"x-api-key": organization.test_api_key},
        "live_headers": {"x-api-key": organization.production_api_key},
        "legacy_headers": {"x-api-key": organization.api_key},
        "flow_a": flow_a.id,
        "flow_b": flow_b.id,
    }

@pytest.fixture
def flow_screens():
    return {"a": SCREENS_A, "b": SCREENS_B}

@pytest.fixture
def project(db_session, org):
    suffix = uuid.uuid4().hex[:10]
    db_project = Project(organization_id=org["id"], name="iOS app",
                         test_api_key=f"nb_test_p{suffix}", production_api_key=f"nb_live_p{suffix}")
    db_session.add(db_project)
    db_session.commit()
    return {"id": db_project.id, "headers": {"x-api-key": db_project.test_api_key}}

@pytest.fixture
def make_experiment(db_session, org):
    """Insert an experiment directly, bypassing the authoring endpoint."""
    def _make(status="active", variants=None, project_id=None):
        experiment = Experiment(
            organization_id=org["id"],
            project_id=project_id,
            name="Welcome copy",
            status=status,
            variants=variants if variants is not None else [
                {"variant_id": "A", "name": "A", "weight": 60, "screens": SCREENS_A},
                {"variant_id": "B", "name": "B", "weight": 40, "screens": SCREENS_B},
            ],
            primary_metric="flow_completed",
        )
        db_session.add(experiment)
        db_session.commit()
        return experiment.id
    return _make
