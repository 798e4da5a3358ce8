from .memory import MemoryRepository, parse_memory_id

__all__ = ["MemoryRepository", "parse_memory_id"]
