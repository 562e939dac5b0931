import os

# keep the default cache engine away from the working directory while testing
os.environ.setdefault("CACHE_DB_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from inkpost.api import deps
from inkpost.config.settings import settings
from inkpost.main import app
from inkpost.models.cache_entry import CacheEntryRow  # noqa: F401  (registers the table)
from inkpost.services.cache_storage import CacheStorage
from inkpost.services.comments_service import CommentSessionRegistry, CommentThread
from inkpost.services.content_service import ContentService
from tests.fakes import FakeAuthClient, FakeBackend, FakeClock, FakeStoreClient


@pytest.fixture
def clock():
    return FakeClock(now=1_700_000_000_000)


@pytest.fixture
def storage(tmp_path):
    # a file database gives each worker thread its own pooled connection
    engine = create_engine(f"sqlite:///{tmp_path / 'cache.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False)
    yield CacheStorage(session_factory=factory)
    engine.dispose()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store(backend):
    return FakeStoreClient(backend)


@pytest.fixture
def content_service(store, storage):
    return ContentService(store=store, storage=storage)


@pytest.fixture
def admin_enabled(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_ENABLED", True)


@pytest.fixture
def client(store, storage):
    registry = CommentSessionRegistry(lambda: CommentThread(store))
    auth_client = FakeAuthClient()
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_content_service] = lambda: ContentService(store=store, storage=storage)
    app.dependency_overrides[deps.get_comment_sessions] = lambda: registry
    app.dependency_overrides[deps.get_auth_client] = lambda: auth_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
