"""Datastore adapter factory — creates the right adapter based on config."""

from __future__ import annotations

from src.config import Settings
from src.ports.datastore_port import DatastorePort


def create_datastore(settings: Settings) -> DatastorePort:
    """Return the datastore adapter matching the DATASTORE_PROVIDER setting."""
    provider = settings.DATASTORE_PROVIDER

    if provider == "supabase":
        from src.adapters.supabase_datastore import SupabaseDatastore

        return SupabaseDatastore(
            url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        )

    if provider == "sqlite":
        from src.data.db import SQLiteDatastore

        return SQLiteDatastore(db_path=settings.DATABASE_PATH)

    raise ValueError(f"Unknown DATASTORE_PROVIDER: {provider!r}")
