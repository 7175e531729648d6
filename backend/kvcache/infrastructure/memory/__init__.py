"""
In-memory backing store.
"""

from .memory_store import InMemoryKeyValueStore

__all__ = ["InMemoryKeyValueStore"]
