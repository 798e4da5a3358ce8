"""Neo4j storage backend.

Each memory is a ``:MemoryRecord`` node holding the JSON document; the graph
is used as a durable document store, not for traversal.
"""

import json
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession
from neo4j.exceptions import DriverError, Neo4jError

from memorai.core.decorators import with_session
from memorai.core.logging import get_logger
from memorai.infrastructure.storage.base import Record, created_at_key, not_open_error, translate_errors

logger = get_logger(__name__)

_STORE_ERRORS = (Neo4jError, DriverError, OSError)


def _requires_driver(operation: str) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(self: "Neo4jMemoryStore", *args: Any, **kwargs: Any) -> Any:
            if self.driver is None:
                raise not_open_error(self, operation)
            return await func(self, *args, **kwargs)

        return wrapper

    return decorator


class Neo4jMemoryStore:
    """Memory records stored as JSON properties on Neo4j nodes."""

    backend = "neo4j"

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        max_connection_pool_size: int = 50,
    ):
        self.uri = uri
        self.username = username
        self.password = password
        self.max_connection_pool_size = max_connection_pool_size
        self.driver: AsyncDriver | None = None

    @translate_errors("open", *_STORE_ERRORS)
    async def open(self) -> None:
        if self.driver is not None:
            return
        logger.info("Creating Neo4j driver", uri=self.uri, pool_size=self.max_connection_pool_size)
        self.driver = AsyncGraphDatabase.driver(
            self.uri,
            auth=(self.username, self.password),
            max_connection_pool_size=self.max_connection_pool_size,
        )
        await self.driver.verify_connectivity()
        async with self.driver.session() as session:
            await session.run(
                "CREATE CONSTRAINT memory_record_id IF NOT EXISTS "
                "FOR (m:MemoryRecord) REQUIRE m.id IS UNIQUE"
            )
        logger.info("Neo4j connection established")

    async def close(self) -> None:
        if self.driver is not None:
            await self.driver.close()
            self.driver = None
            logger.info("Neo4j driver closed")

    @translate_errors("put", *_STORE_ERRORS)
    @_requires_driver("put")
    @with_session()
    async def put(self, session: AsyncSession, record_id: str, record: Record) -> None:
        await session.run(
            """
            MERGE (m:MemoryRecord {id: $id})
            SET m.created_at = $created_at,
                m.data = $data
            """,
            id=record_id,
            created_at=created_at_key(record),
            data=json.dumps(record),
        )

    @translate_errors("get", *_STORE_ERRORS)
    @_requires_driver("get")
    @with_session()
    async def get(self, session: AsyncSession, record_id: str) -> Record | None:
        result = await session.run(
            "MATCH (m:MemoryRecord {id: $id}) RETURN m.data AS data",
            id=record_id,
        )
        record = await result.single()
        return json.loads(record["data"]) if record else None

    @translate_errors("delete", *_STORE_ERRORS)
    @_requires_driver("delete")
    @with_session()
    async def delete(self, session: AsyncSession, record_id: str) -> bool:
        result = await session.run(
            """
            MATCH (m:MemoryRecord {id: $id})
            DETACH DELETE m
            RETURN count(*) AS deleted
            """,
            id=record_id,
        )
        record = await result.single()
        return bool(record and record["deleted"])

    @translate_errors("scan", *_STORE_ERRORS)
    @_requires_driver("scan")
    @with_session()
    async def scan(self, session: AsyncSession) -> list[Record]:
        result = await session.run(
            "MATCH (m:MemoryRecord) RETURN m.data AS data ORDER BY m.created_at"
        )
        return [json.loads(record["data"]) async for record in result]
