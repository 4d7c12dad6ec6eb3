import os

# Must be set before main is imported; main opens the store at import time.
os.environ.setdefault("HOBBYHUB_DB", ":memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-for-pytest-only")

import pytest  # noqa: E402
from database import Database  # noqa: E402
from manager import IdentityRegistry, SessionManager, ContentStore, Dashboard  # noqa: E402


@pytest.fixture
def store():
    db = Database(":memory:")
    yield db
    db.close()


@pytest.fixture
def registry(store):
    return IdentityRegistry(store)


@pytest.fixture
def sessions(store, registry):
    return SessionManager(store, registry)


@pytest.fixture
def content(store):
    return ContentStore(store)


@pytest.fixture
def dashboard(registry, content):
    return Dashboard(registry, content)
