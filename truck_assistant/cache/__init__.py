"""Local TTL cache persisted to a JSON file."""

from truck_assistant.cache.local_cache import LocalCache

__all__ = ["LocalCache"]
