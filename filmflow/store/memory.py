"""
In-memory "virtual store" backend

Keeps rows as plain dicts per table and hands out fresh, detached model
instances, so callers never share state with the store. Each call is
atomic (one asyncio.Lock) but yields to the event loop first, which lets
concurrent requests interleave between calls the same way they do against
a remote database.

Used for local runs (STORE_BACKEND=memory) and throughout the test suite.
"""
import asyncio
import logging
from collections import defaultdict
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from filmflow.core.exceptions import StoreError
from filmflow.store.base import Store, COLLECTION_TYPES

logger = logging.getLogger(__name__)


def _stock_item_check(row: Dict[str, Any]) -> bool:
    return (row.get("kg") or 0) >= 0 and (row.get("quantity") or 0) >= 0


# Mirrors of the database CHECK constraints the engine relies on
ROW_CHECKS: Dict[str, Callable[[Dict[str, Any]], bool]] = {
    "stock_items": _stock_item_check,
}


def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for key, value in (filters or {}).items():
        current = row.get(key)
        if isinstance(value, COLLECTION_TYPES):
            if current not in value:
                return False
        elif current != value:
            return False
    return True


class MemoryStore(Store):

    def __init__(self):
        self._tables: Dict[str, Dict[int, Dict[str, Any]]] = defaultdict(dict)
        self._sequences: Dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _materialize(self, model, row: Dict[str, Any]):
        return model(**deepcopy(row))

    def _check(self, model, row: Dict[str, Any]) -> None:
        check = ROW_CHECKS.get(model.__tablename__)
        if check and not check(row):
            raise StoreError(
                f"check constraint violated on {model.__tablename__}",
                details={"table": model.__tablename__, "row_id": row.get("id")},
            )

    def _with_defaults(self, model, values: Dict[str, Any]) -> Dict[str, Any]:
        row = {}
        for column in model.__table__.columns:
            if column.key in values:
                row[column.key] = values[column.key]
            elif column.default is not None and column.default.is_scalar:
                row[column.key] = column.default.arg
            elif column.server_default is not None:
                # Every server default in the schema is now()
                row[column.key] = self._now()
            else:
                row[column.key] = None
        return row

    # ------------------------------------------------------------- interface

    async def get(self, model, record_id: int):
        await asyncio.sleep(0)
        async with self._lock:
            row = self._tables[model.__tablename__].get(record_id)
            return self._materialize(model, row) if row is not None else None

    async def select(
        self,
        model,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Any]:
        await asyncio.sleep(0)
        async with self._lock:
            rows = [
                row for row in self._tables[model.__tablename__].values()
                if _matches(row, filters)
            ]
        if order_by:
            # None sorts first ascending, last descending
            rows.sort(
                key=lambda r: (r.get(order_by) is not None, r.get(order_by), r["id"]),
                reverse=descending,
            )
        else:
            rows.sort(key=lambda r: r["id"])
        if limit is not None:
            rows = rows[:limit]
        return [self._materialize(model, row) for row in rows]

    async def insert(self, model, values: Dict[str, Any]):
        await asyncio.sleep(0)
        async with self._lock:
            table = model.__tablename__
            row = self._with_defaults(model, values)
            if row.get("id") is None:
                self._sequences[table] += 1
                row["id"] = self._sequences[table]
            else:
                if row["id"] in self._tables[table]:
                    raise StoreError(
                        f"duplicate key on {table}",
                        details={"table": table, "row_id": row["id"]},
                    )
                self._sequences[table] = max(self._sequences[table], row["id"])
            self._check(model, row)
            self._tables[table][row["id"]] = row
            return self._materialize(model, row)

    async def update(
        self,
        model,
        record_id: int,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
        at_least: Optional[Dict[str, Any]] = None,
    ):
        await asyncio.sleep(0)
        async with self._lock:
            table = model.__tablename__
            row = self._tables[table].get(record_id)
            if row is None or not _matches(row, expected):
                return None
            for key, minimum in (at_least or {}).items():
                if row.get(key) is None or row[key] < minimum:
                    return None

            updated = dict(row)
            updated.update(values)
            for column in model.__table__.columns:
                if column.onupdate is not None and column.key not in values:
                    updated[column.key] = self._now()
            self._check(model, updated)
            self._tables[table][record_id] = updated
            return self._materialize(model, updated)

    async def delete(self, model, record_id: int):
        await asyncio.sleep(0)
        async with self._lock:
            row = self._tables[model.__tablename__].pop(record_id, None)
            return self._materialize(model, row) if row is not None else None

    async def ping(self) -> None:
        return None

    def count(self, model) -> int:
        """Row count for a table (diagnostics and tests)."""
        return len(self._tables[model.__tablename__])
