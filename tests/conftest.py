"""Test configuration and fixtures."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest

from memorai.core.base import ServiceErrorDetails
from memorai.core.config import Settings
from memorai.core.errors import ServiceUnreachable, StorageError
from memorai.infrastructure.repositories import MemoryRepository
from memorai.infrastructure.storage import Record
from memorai.infrastructure.storage.base import created_at_key
from memorai.services.ingestion import IngestionPipeline
from memorai.services.memory_service import MemoryService
from memorai.services.query import QueryEngine
from memorai.services.similarity_index import SimilarityIndex

DIMENSIONS = 4

# One axis per topic; a text's vector counts the topic words it contains.
TOPIC_WORDS = (
    ("hiking", "outdoor", "mountain", "trail", "camping", "climbing"),
    ("tea", "coffee", "drink", "espresso"),
    ("python", "code", "programming", "rust"),
    ("music", "guitar", "song", "piano"),
)


def keyword_vector(text: str) -> list[float]:
    words = text.lower().replace(",", " ").replace(".", " ").split()
    return [float(sum(word.startswith(topic) for word in words for topic in topics)) for topics in TOPIC_WORDS]


class StubGateway:
    """Deterministic stand-in for the Ollama gateway.

    Texts containing ``FAIL`` raise ``ServiceUnreachable``. Every call is
    recorded, and the peak number of concurrent ``embed`` calls is tracked.
    """

    def __init__(self, dimensions: int = DIMENSIONS, delay: float = 0.0, profile_text: str = "  A curious person.  "):
        self.dimensions = dimensions
        self.delay = delay
        self.profile_text = profile_text
        self.embedded: list[str] = []
        self.prompts: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.embedded.append(text)
            if "FAIL" in text:
                raise ServiceUnreachable(
                    message="embedding service unreachable",
                    details=ServiceErrorDetails(source="stub", operation="embed", service_name="stub"),
                )
            return keyword_vector(text)[: self.dimensions]
        finally:
            self.in_flight -= 1

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.profile_text

    async def close(self) -> None:
        self.closed = True


class InMemoryStore:
    """Dict-backed MemoryStore."""

    backend = "memory"

    def __init__(self):
        self.records: dict[str, Record] = {}
        self.opened = False
        self.fail_puts_for: set[str] = set()

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.opened = False

    async def put(self, record_id: str, record: Record) -> None:
        if record["text"] in self.fail_puts_for:
            raise StorageError(message=f"memory put failed for {record_id}")
        self.records[record_id] = dict(record)

    async def get(self, record_id: str) -> Record | None:
        record = self.records.get(record_id)
        return dict(record) if record else None

    async def delete(self, record_id: str) -> bool:
        return self.records.pop(record_id, None) is not None

    async def scan(self) -> list[Record]:
        return sorted((dict(r) for r in self.records.values()), key=created_at_key)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        embedding_dimensions=DIMENSIONS,
        retry_initial_delay=0,
        enable_mcp=False,
        log_level="WARNING",
    )


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repository(store: InMemoryStore) -> MemoryRepository:
    return MemoryRepository(store, dimensions=DIMENSIONS)


@pytest.fixture
def index() -> SimilarityIndex:
    return SimilarityIndex(DIMENSIONS)


@pytest.fixture
def pipeline(gateway: StubGateway, repository: MemoryRepository, index: SimilarityIndex) -> IngestionPipeline:
    return IngestionPipeline(gateway, repository, index, concurrency=4)


@pytest.fixture
def engine(gateway: StubGateway, repository: MemoryRepository, index: SimilarityIndex) -> QueryEngine:
    return QueryEngine(gateway, repository, index, default_limit=10, max_limit=100)


@pytest.fixture
async def service(
    store: InMemoryStore, gateway: StubGateway, test_settings: Settings
) -> AsyncGenerator[MemoryService, Any]:
    memory_service = MemoryService(store, gateway, test_settings)
    await memory_service.open()
    yield memory_service
    await memory_service.close()
