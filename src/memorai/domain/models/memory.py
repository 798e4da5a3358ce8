"""Memory domain models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from memorai.domain.models.utils import utc_now

UNSPECIFIED_SOURCE = "unspecified"


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        cleaned = str(tag).strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


class MemoryCreate(BaseModel):
    """A memory as submitted by a caller, before it is embedded."""

    text: str
    tags: list[str] = Field(default_factory=list)
    source: str = UNSPECIFIED_SOURCE

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            # CLI-style "a, b, c"
            v = v.split(",")
        if not isinstance(v, list | tuple | set):
            raise ValueError("tags must be a list of strings or a comma-separated string")
        return normalize_tags(list(v))

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return UNSPECIFIED_SOURCE
        return str(v).strip()


class MemoryDraft(MemoryCreate):
    """An embedded memory that has not been assigned an identity yet."""

    embedding: list[float]


class MemoryView(BaseModel):
    """A memory as returned to API callers (no embedding)."""

    id: UUID
    text: str
    tags: list[str]
    source: str
    created_at: datetime
    updated_at: datetime


class Memory(MemoryDraft):
    """Canonical stored memory. Identity, timestamps and embedding never change."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def __str__(self) -> str:
        return f"Memory(id={self.id}, text='{self.text[:50]}', tags={self.tags})"

    def to_view(self) -> MemoryView:
        return MemoryView.model_validate(self.model_dump(exclude={"embedding"}))

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict handed to the storage backend."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Memory":
        return cls.model_validate(record)


class MemoryFilter(BaseModel):
    """Exact-match filter on tag membership and/or source."""

    tag: str | None = None
    source: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.tag is None and self.source is None

    def matches(self, memory: Memory) -> bool:
        if self.tag is not None and self.tag not in memory.tags:
            return False
        if self.source is not None and memory.source != self.source:
            return False
        return True


class MemoryPage(BaseModel):
    """One page of a filtered, newest-first listing."""

    items: list[MemoryView]
    total: int
    page: int
    per_page: int


class SearchResult(BaseModel):
    """A memory ranked by cosine similarity to a query."""

    memory: MemoryView
    score: float = Field(ge=-1.0, le=1.0)


class BulkFailure(BaseModel):
    """Why the input item at ``index`` was not stored."""

    index: int
    reason: str


class BulkImportOutcome(BaseModel):
    """Per-item result of a bulk import; every input index appears exactly once."""

    succeeded: list[UUID] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def created(self) -> int:
        return len(self.succeeded)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_count(self) -> int:
        return len(self.failed)


class Profile(BaseModel):
    """Generated summary of a person derived from their memories."""

    text: str
    generated_at: datetime = Field(default_factory=utc_now)
    source_count: int = Field(ge=0, description="Memories actually folded into the prompt")


class TagCount(BaseModel):
    tag: str
    count: int


class SourceCount(BaseModel):
    source: str
    count: int


class MemoryStats(BaseModel):
    """Aggregate counts over the stored memories."""

    total_memories: int
    distinct_tags: int
    distinct_sources: int
    tags: list[TagCount] = Field(default_factory=list)
    sources: list[SourceCount] = Field(default_factory=list)
