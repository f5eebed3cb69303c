"""
Persistence backends behind one read/write interface.

get_store() returns the process-wide store selected by STORE_BACKEND.
"""
from typing import Optional

from filmflow.core.config import settings
from filmflow.store.base import Store
from filmflow.store.memory import MemoryStore

_store: Optional[Store] = None


def get_store() -> Store:
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "memory":
            _store = MemoryStore()
        else:
            from filmflow.store.sql import SqlStore
            _store = SqlStore()
    return _store


def set_store(store: Optional[Store]) -> None:
    """Replace the process-wide store (tests, CLI tools)."""
    global _store
    _store = store


__all__ = ["Store", "MemoryStore", "get_store", "set_store"]
