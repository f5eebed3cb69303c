"""
SQL store backend (SQLAlchemy asyncio)

One session per call, committed on exit. Conditional updates compile to a
single UPDATE ... WHERE id = :id AND <conditions>; the row count decides
whether the write happened.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, text
from sqlalchemy.exc import SQLAlchemyError

from filmflow.core.database import get_db_session
from filmflow.core.exceptions import StoreError
from filmflow.store.base import Store, COLLECTION_TYPES

logger = logging.getLogger(__name__)


def _condition(column, value):
    if isinstance(value, COLLECTION_TYPES):
        return column.in_(list(value))
    if value is None:
        return column.is_(None)
    return column == value


class SqlStore(Store):
    """Store backed by the configured async database engine."""

    def __init__(self, session_factory=get_db_session):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _unit(self, operation: str, model):
        try:
            async with self._session_factory() as db:
                yield db
        except SQLAlchemyError as e:
            logger.error(
                "Store %s on %s failed: %s: %s",
                operation, model.__tablename__, type(e).__name__, str(e)[:200],
            )
            raise StoreError(
                f"{operation} on {model.__tablename__} failed",
                details={"table": model.__tablename__, "operation": operation},
            ) from e

    async def get(self, model, record_id: int):
        async with self._unit("get", model) as db:
            return await db.get(model, record_id)

    async def select(
        self,
        model,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Any]:
        query = select(model)
        for key, value in (filters or {}).items():
            query = query.where(_condition(getattr(model, key), value))
        if order_by:
            column = getattr(model, order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            query = query.limit(limit)

        async with self._unit("select", model) as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def insert(self, model, values: Dict[str, Any]):
        async with self._unit("insert", model) as db:
            row = model(**values)
            db.add(row)
            await db.flush()
            # Load server defaults (created_at) before the session closes
            await db.refresh(row)
            return row

    async def update(
        self,
        model,
        record_id: int,
        values: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
        at_least: Optional[Dict[str, Any]] = None,
    ):
        stmt = update(model).where(model.id == record_id)
        for key, value in (expected or {}).items():
            stmt = stmt.where(_condition(getattr(model, key), value))
        for key, value in (at_least or {}).items():
            stmt = stmt.where(getattr(model, key) >= value)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        async with self._unit("update", model) as db:
            result = await db.execute(stmt)
            if result.rowcount == 0:
                return None
            return await db.get(model, record_id, populate_existing=True)

    async def delete(self, model, record_id: int):
        async with self._unit("delete", model) as db:
            row = await db.get(model, record_id)
            if row is None:
                return None
            await db.delete(row)
            return row

    async def ping(self) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Database unreachable: {type(e).__name__}") from e
