"""Domain models for memorai."""

from .memory import (
    UNSPECIFIED_SOURCE,
    BulkFailure,
    BulkImportOutcome,
    Memory,
    MemoryCreate,
    MemoryDraft,
    MemoryFilter,
    MemoryPage,
    MemoryStats,
    MemoryView,
    Profile,
    SearchResult,
    SourceCount,
    TagCount,
)
from .utils import utc_now

__all__ = [
    "UNSPECIFIED_SOURCE",
    "BulkFailure",
    "BulkImportOutcome",
    "Memory",
    "MemoryCreate",
    "MemoryDraft",
    "MemoryFilter",
    "MemoryPage",
    "MemoryStats",
    "MemoryView",
    "Profile",
    "SearchResult",
    "SourceCount",
    "TagCount",
    "utc_now",
]
