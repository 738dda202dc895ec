import os, tempfile, uuid
import pytest

# keep the app's own engine off the working directory
_fd, _app_db = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_app_db}")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app, get_registry
from db import init_db
from instances import InstanceRegistry
from store import SqlKeyValueStore
from repositories import SurveyRepository, ResponseRepository
from aggregation import AggregationEngine

@pytest.fixture(scope="session")
def tmp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path

@pytest.fixture(scope="session")
def test_engine(tmp_db_path):
    url = f"sqlite:///{tmp_db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    init_db(bind=engine)
    return engine

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture(scope="session", autouse=True)
def override_di(TestingSessionLocal):
    test_registry = InstanceRegistry(TestingSessionLocal)
    app.dependency_overrides[get_registry] = lambda: test_registry
    yield
    app.dependency_overrides.pop(get_registry, None)

@pytest.fixture
def store(TestingSessionLocal):
    # a fresh namespace per test keeps tests independent on the shared db
    return SqlKeyValueStore(TestingSessionLocal, namespace=uuid.uuid4().hex)

@pytest.fixture
def surveys(store):
    return SurveyRepository(store)

@pytest.fixture
def responses(store, surveys):
    return ResponseRepository(store, surveys)

@pytest.fixture
def stats(store, surveys):
    return AggregationEngine(store, surveys, use_counters=False)

@pytest.fixture
def survey_input():
    return {
        "title": "Wallet UX feedback",
        "description": "Tell us about your wallet",
        "questions": ["What do you use the app for?", "What would you change?"],
        "creator_wallet": "0xCreator",
        "total_reward": 100.0,
        "target_responses": 2,
    }

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def session_id():
    return uuid.uuid4().hex
