"""Store adapters implementing the PersistenceStore protocol."""

from .memory import InMemoryStore

__all__ = ["InMemoryStore"]
