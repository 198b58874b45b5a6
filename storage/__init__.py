"""
Storage collaborator package.

Public API:
- InMemoryStore (compare-and-swap saves for bookings and rides)
- StorageConflict, RecordNotFound
"""
from .memory import InMemoryStore, RecordNotFound, StorageConflict

__all__ = ["InMemoryStore", "RecordNotFound", "StorageConflict"]
