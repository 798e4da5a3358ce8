"""Folding stored memories into a generated profile summary."""

from __future__ import annotations

from typing import TYPE_CHECKING

from memorai.core.base import ErrorDetails
from memorai.core.errors import InsufficientData
from memorai.core.logging import get_logger
from memorai.domain.models import MemoryFilter, Profile

if TYPE_CHECKING:
    from memorai.infrastructure.repositories import MemoryRepository
    from memorai.services import EmbeddingGateway

logger = get_logger(__name__)

PROFILE_PROMPT = (
    "Based on the following collection of memories/notes from a person, create a concise user profile summary. "
    "Include their interests, expertise, personality traits, and any patterns you notice. "
    "Be insightful but respectful of privacy. Write in third person.\n\n"
    "Memories:\n{memories}\n\n"
    "Profile summary:"
)


def select_within_budget(texts_newest_first: list[str], char_budget: int) -> list[str]:
    """Newest texts whose numbered lines fit ``char_budget``, returned oldest first.

    Each line is charged as ``"<n>. <text>\\n"`` with ``n`` at its widest. The
    newest text is always kept, cut to fit if it is longer than the budget.
    """
    if not texts_newest_first:
        return []

    overhead = len(str(len(texts_newest_first))) + len(". ") + len("\n")
    selected: list[str] = []
    used = 0
    for text in texts_newest_first:
        cost = overhead + len(text)
        if used + cost > char_budget:
            if not selected:
                selected.append(text[: max(1, char_budget - overhead)])
            break
        selected.append(text)
        used += cost

    selected.reverse()
    return selected


def render_prompt(texts: list[str]) -> str:
    numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(texts, start=1))
    return PROFILE_PROMPT.format(memories=numbered)


class ProfileBuilder:
    """Builds a third-person profile of the user from their memories."""

    def __init__(
        self,
        gateway: EmbeddingGateway,
        repository: MemoryRepository,
        char_budget: int = 6_000,
        max_memories: int = 100,
    ):
        self.gateway = gateway
        self.repository = repository
        self.char_budget = char_budget
        self.max_memories = max_memories

    async def build(self, memory_filter: MemoryFilter | None = None) -> Profile:
        """Generate a profile from the newest memories that fit the prompt budget.

        Raises:
            InsufficientData: If no memory matches ``memory_filter``
        """
        memories = (await self.repository.matching(memory_filter))[: self.max_memories]
        if not memories:
            raise InsufficientData(
                message="No memories stored yet. Add some memories to generate a profile.",
                details=ErrorDetails(source="profile_builder", operation="build"),
            )

        texts = select_within_budget([m.text for m in memories], self.char_budget)
        if len(texts) < len(memories):
            logger.info(f"Profile prompt budget kept {len(texts)} of {len(memories)} memories")

        summary = await self.gateway.generate(render_prompt(texts))
        return Profile(text=summary.strip(), source_count=len(texts))
