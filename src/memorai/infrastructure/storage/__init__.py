"""Storage backends for memory records."""

from memorai.core.config import Settings
from memorai.infrastructure.storage.base import MemoryStore, Record
from memorai.infrastructure.storage.sqlite import SQLiteMemoryStore


def create_memory_store(settings: Settings) -> MemoryStore:
    """Build the configured backend; the caller opens and closes it."""
    if settings.storage_backend == "neo4j":
        from memorai.infrastructure.storage.neo4j import Neo4jMemoryStore

        return Neo4jMemoryStore(
            uri=settings.neo4j_uri,
            username=settings.neo4j_user,
            password=settings.neo4j_password.get_secret_value(),
        )
    return SQLiteMemoryStore(settings.sqlite_path)


__all__ = ["MemoryStore", "Record", "SQLiteMemoryStore", "create_memory_store"]
