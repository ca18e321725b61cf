"""Shared test fixtures and configuration.

Provides a temp-file SQLite datastore seeded with a small profile
directory, and a Settings factory that never touches the real .env.
"""

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_growflow.db")


@pytest.fixture
def store(tmp_db_path):
    """Return an empty SQLiteDatastore backed by a temp file."""
    from src.data.db import SQLiteDatastore
    return SQLiteDatastore(db_path=tmp_db_path)


@pytest.fixture
def profiles(store):
    """Seed the profile directory: a submitter and two teammates."""
    return {
        "alice": store.add_profile("Alice Cooper", "alice@example.com", profile_id="user-alice"),
        "john": store.add_profile("John Smith", "john@example.com", profile_id="user-john"),
        "mary": store.add_profile("Mary Jane Watson", profile_id="user-mary"),
    }


@pytest.fixture
def make_settings():
    """Return a factory for Settings with test-friendly defaults."""
    from src.config import Settings

    def _make(**overrides):
        values = {"DATASTORE_PROVIDER": "sqlite", "DATABASE_PATH": ":memory:"}
        values.update(overrides)
        return Settings(**values)

    return _make
