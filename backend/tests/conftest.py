"""Pytest configuration for backend tests."""
import sys
import os
from pathlib import Path
import pytest

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time; keep tests off any real database or .env storage choice
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite://"

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.database import Base, build_engine

# Import the entire models module to ensure all models are registered with Base.metadata
# This must happen before create_all() so that all table definitions are available
import app.models  # noqa: F401
from app.main import app
from app.services.database_storage import DatabaseStorage
from app.services.memory_storage import MemoryStorage
from app.services.storage import get_storage


# Defaults to a private in-memory SQLite database; point at Postgres to exercise advisory locks
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture
def engine():
    """
    Create a fresh test database engine with all tables.

    SQLite in-memory databases live as long as their single connection, so
    StaticPool keeps one connection shared across threads for the test.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    else:
        test_engine = build_engine(TEST_DATABASE_URL)

    # Debug assertion: verify tables are registered
    if not Base.metadata.tables:
        raise RuntimeError(
            "No tables registered in Base.metadata. "
            "Did you import app.models? All model classes must be imported before create_all()."
        )

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def database_storage(engine) -> DatabaseStorage:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    return DatabaseStorage(SessionLocal)


@pytest.fixture(params=["memory", "database"])
def storage(request):
    """Run the test once against each storage implementation."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def client(storage, tmp_path, monkeypatch):
    """TestClient wired to the parametrized storage, with uploads in a temp dir."""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
