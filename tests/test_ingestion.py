"""Tests for single and bulk ingestion."""

from unittest.mock import patch

import pytest

from memorai.core.errors import ServiceUnreachable, ValidationError
from memorai.domain.models import MemoryCreate
from memorai.services.ingestion import IngestionPipeline

from .conftest import StubGateway


class TestAdd:
    async def test_add_embeds_persists_and_indexes(self, pipeline, gateway, repository, index):
        memory = await pipeline.add(MemoryCreate(text="I love hiking", tags="outdoors, weekend", source="cli"))

        assert gateway.embedded == ["I love hiking"]
        assert memory.tags == ["outdoors", "weekend"]
        assert memory.source == "cli"
        assert await repository.get(memory.id) == memory
        assert memory.id in index

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_text_rejected_before_embedding(self, pipeline, gateway, text):
        with pytest.raises(ValidationError):
            await pipeline.add(MemoryCreate(text=text))
        assert gateway.embedded == []

    async def test_embed_failure_persists_nothing(self, pipeline, repository, index):
        with pytest.raises(ServiceUnreachable):
            await pipeline.add(MemoryCreate(text="please FAIL"))

        assert await repository.all() == []
        assert len(index) == 0

    async def test_duplicate_tags_collapse(self, pipeline):
        memory = await pipeline.add(MemoryCreate(text="tea time", tags=["tea", " tea ", "", "drinks"]))
        assert memory.tags == ["tea", "drinks"]


class TestAddMany:
    async def test_empty_input(self, pipeline):
        outcome = await pipeline.add_many([])
        assert outcome.succeeded == []
        assert outcome.failed == []
        assert outcome.created == 0

    async def test_partial_failures_are_accounted_exactly(self, pipeline, repository, index, store):
        store.fail_puts_for.add("storage breaks here")
        items = [
            MemoryCreate(text="I love hiking"),
            MemoryCreate(text="   "),
            MemoryCreate(text="FAIL to embed"),
            MemoryCreate(text="green tea"),
            MemoryCreate(text="storage breaks here"),
            MemoryCreate(text="guitar practice"),
        ]

        outcome = await pipeline.add_many(items)

        assert outcome.created == 3
        assert outcome.failed_count == 3
        assert [f.index for f in outcome.failed] == [1, 2, 4]
        assert all(f.reason for f in outcome.failed)
        assert "empty" in outcome.failed[0].reason

        stored = {m.text for m in await repository.all()}
        assert stored == {"I love hiking", "green tea", "guitar practice"}
        assert len(index) == 3
        # every succeeded id is real and in input order
        texts = [(await repository.get(memory_id)).text for memory_id in outcome.succeeded]
        assert texts == ["I love hiking", "green tea", "guitar practice"]

    async def test_item_failures_logged_once_as_warnings(self, pipeline):
        items = [MemoryCreate(text="FAIL to embed"), MemoryCreate(text="   "), MemoryCreate(text="green tea")]

        with (
            patch("memorai.services.ingestion.logger") as ingestion_logger,
            patch("memorai.core.decorators.logger") as decorator_logger,
        ):
            outcome = await pipeline.add_many(items)

        assert outcome.failed_count == 2
        decorator_logger.log.assert_not_called()
        assert sorted(c.kwargs["index"] for c in ingestion_logger.warning.call_args_list) == [0, 1]

    async def test_concurrency_is_bounded(self, repository, index):
        gateway = StubGateway(delay=0.01)
        pipeline = IngestionPipeline(gateway, repository, index, concurrency=2)

        outcome = await pipeline.add_many([MemoryCreate(text=f"song number {i}") for i in range(8)])

        assert outcome.created == 8
        assert 1 < gateway.peak_in_flight <= 2

    def test_concurrency_must_be_positive(self, gateway, repository, index):
        with pytest.raises(ValueError):
            IngestionPipeline(gateway, repository, index, concurrency=0)
