"""Tests for profile generation."""

from datetime import timedelta

import pytest

from memorai.core.errors import InsufficientData
from memorai.domain.models import Memory, MemoryFilter, utc_now
from memorai.services.profile import ProfileBuilder, render_prompt, select_within_budget


async def seed(repository, *texts: str, tags: list[str] | None = None) -> list[Memory]:
    """Store ``texts`` oldest first, one minute apart."""
    now = utc_now()
    memories = []
    for age, text in zip(range(len(texts), 0, -1), texts, strict=True):
        memory = Memory(
            text=text,
            tags=tags or [],
            embedding=[0, 0, 0, 1],
            created_at=now - timedelta(minutes=age),
        )
        memories.append(await repository.create(memory))
    return memories


class TestSelectWithinBudget:
    def test_everything_fits(self):
        assert select_within_budget(["newest", "older", "oldest"], 1_000) == ["oldest", "older", "newest"]

    def test_keeps_newest_under_pressure(self):
        texts = ["c" * 10, "b" * 10, "a" * 10]
        # each line costs 1 (digit) + 2 (". ") + 1 (newline) + 10
        assert select_within_budget(texts, 28) == ["b" * 10, "c" * 10]

    def test_oversized_newest_is_truncated(self):
        [kept] = select_within_budget(["x" * 500, "y"], 50)
        assert kept == "x" * (50 - 4)

    def test_empty(self):
        assert select_within_budget([], 100) == []


class TestRenderPrompt:
    def test_numbers_memories_inside_template(self):
        prompt = render_prompt(["first", "second"])
        assert "Memories:\n1. first\n2. second\n\nProfile summary:" in prompt
        assert prompt.startswith("Based on the following collection of memories/notes from a person")


class TestProfileBuilder:
    async def test_no_memories_raises_insufficient_data(self, gateway, repository):
        builder = ProfileBuilder(gateway, repository)
        with pytest.raises(InsufficientData):
            await builder.build()
        assert gateway.prompts == []

    async def test_filter_with_no_matches_raises_insufficient_data(self, gateway, repository):
        await seed(repository, "plays guitar")
        with pytest.raises(InsufficientData):
            await ProfileBuilder(gateway, repository).build(MemoryFilter(tag="missing"))

    async def test_generates_from_all_memories_oldest_first(self, gateway, repository):
        await seed(repository, "learned rust", "plays guitar", "drinks espresso")

        profile = await ProfileBuilder(gateway, repository).build()

        assert profile.text == "A curious person."
        assert profile.source_count == 3
        [prompt] = gateway.prompts
        assert "1. learned rust\n2. plays guitar\n3. drinks espresso" in prompt

    async def test_tight_budget_keeps_newest(self, gateway, repository):
        memories = await seed(repository, *[f"memory number {i:02d}" for i in range(10)])

        builder = ProfileBuilder(gateway, repository, char_budget=80)
        profile = await builder.build()

        assert 0 < profile.source_count < len(memories)
        [prompt] = gateway.prompts
        assert memories[-1].text in prompt
        assert memories[0].text not in prompt

    async def test_max_memories_cap(self, gateway, repository):
        await seed(repository, "one", "two", "three", "four")
        profile = await ProfileBuilder(gateway, repository, max_memories=2).build()

        assert profile.source_count == 2
        assert "1. three\n2. four" in gateway.prompts[0]
