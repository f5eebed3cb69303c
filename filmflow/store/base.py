"""
Store interface

Table-level read/write contract shared by the SQL backend and the in-memory
virtual store. Every call is its own committed unit of work; there is no way
to group calls into one transaction. Callers that need several writes to
land together (the services in filmflow.services) compensate explicitly.

Filters are {column: value}; a list/tuple/set value means "column IN value".
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar

ModelT = TypeVar("ModelT")

COLLECTION_TYPES = (list, tuple, set, frozenset)


class Store(ABC):

    @abstractmethod
    async def get(self, model: Type[ModelT], record_id: int) -> Optional[ModelT]:
        """Fetch one row by primary key, or None."""

    @abstractmethod
    async def select(
        self,
        model: Type[ModelT],
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        """Fetch all rows matching the filters."""

    @abstractmethod
    async def insert(self, model: Type[ModelT], values: Dict[str, Any]) -> ModelT:
        """Insert one row and return it with defaults and id filled in.

        An explicit "id" in values is honoured (used when re-inserting a row
        that a compensation step is putting back).
        """

    @abstractmethod
    async def update(
        self,
        model: Type[ModelT],
        record_id: int,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
        at_least: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelT]:
        """
        Conditional single-row update.

        Applies values to the row only if every column in `expected` still
        equals the given value and every column in `at_least` is >= the given
        value. Returns the updated row, or None when no row matched (missing
        row or failed condition; callers that care re-read to tell them apart).
        """

    @abstractmethod
    async def delete(self, model: Type[ModelT], record_id: int) -> Optional[ModelT]:
        """Delete one row and return what was deleted, or None if absent."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreError if the backend is unreachable."""
