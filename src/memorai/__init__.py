"""memorai: local-first semantic memory with vector search and profiles."""

__version__ = "0.1.0"
