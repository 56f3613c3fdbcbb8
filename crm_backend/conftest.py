# crm_backend/conftest.py
import sys
import os
import pytest
from pathlib import Path

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Tests always run against in-memory SQLite unless told otherwise
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="function")
def db():
    """
    Fresh database per test.

    A new engine is created for every test; with sqlite:// that is a brand new
    in-memory database, so nothing leaks between tests.
    """
    from crm_backend.core.database import init_engine, create_all_tables, drop_all_tables

    init_engine(os.environ["TEST_DATABASE_URL"])
    create_all_tables()
    yield
    drop_all_tables()


@pytest.fixture
def admin_headers(monkeypatch):
    """X-Admin-Key header accepted by admin routes."""
    monkeypatch.setenv("ADMIN_API_KEY", "test-admin-key")
    return {"X-Admin-Key": "test-admin-key"}
