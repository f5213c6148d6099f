from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar
import logging
import math

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vending.database import Database
from vending.errors import duplicate_error
from vending.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class CrudRepository(Generic[ModelT]):
    """
    Persistence for one entity type.

    Every method accepts an optional ``session``. Inside a transaction the
    caller passes the transaction's session so the call joins it; without
    one, the repository opens a short-lived session of its own and commits
    it before returning.

    Lookups return ``None`` for absent rows. Deciding whether absence is an
    error belongs to the caller.
    """

    def __init__(self, database: Database, model: Type[ModelT]):
        self.database = database
        self.model = model

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self.database.transaction() as own_session:
            yield own_session

    def _filtered(self, stmt, filters: Dict[str, Any]):
        for field, value in filters.items():
            if value is None:
                continue
            stmt = stmt.where(getattr(self.model, field) == value)
        return stmt

    async def find_by_id(self, entity_id: str, session: Optional[AsyncSession] = None) -> Optional[ModelT]:
        if not entity_id:
            return None
        async with self._scope(session) as s:
            return await s.get(self.model, entity_id, populate_existing=True)

    async def find_one_by(self, session: Optional[AsyncSession] = None, **filters) -> Optional[ModelT]:
        """First row matching every non-None filter, or None."""
        if not any(value is not None for value in filters.values()):
            return None
        stmt = self._filtered(select(self.model), filters).limit(1)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.scalars().first()

    async def find_all(self, session: Optional[AsyncSession] = None, **filters) -> List[ModelT]:
        stmt = self._filtered(select(self.model), filters).order_by(self.model.date_created)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def find_page(
        self,
        page: int = 1,
        page_size: int = 10,
        search_field: Optional[str] = None,
        search: Optional[str] = None,
        session: Optional[AsyncSession] = None,
        **filters,
    ) -> Tuple[List[ModelT], int, int]:
        """
        Get a page of rows, newest first.

        Returns:
            Tuple of (rows, total count, total pages)
        """
        stmt = self._filtered(select(self.model), filters)
        if search_field and search:
            stmt = stmt.where(getattr(self.model, search_field).ilike(f"%{search}%"))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        offset = (page - 1) * page_size
        page_stmt = stmt.order_by(self.model.date_created.desc()).offset(offset).limit(page_size)

        async with self._scope(session) as s:
            total = (await s.execute(count_stmt)).scalar_one()
            rows = list((await s.execute(page_stmt)).scalars().all())

        total_pages = math.ceil(total / page_size) if total > 0 else 1
        return rows, total, total_pages

    async def create(self, entity: ModelT, session: Optional[AsyncSession] = None) -> ModelT:
        async with self._scope(session) as s:
            s.add(entity)
            try:
                await s.flush()
            except IntegrityError as e:
                logger.warning(f"Integrity error creating {self.model.__name__}: {e.orig}")
                raise duplicate_error(f"{self.model.__name__} already exists") from e
        return entity

    async def create_all(self, entities: Sequence[ModelT], session: Optional[AsyncSession] = None) -> List[ModelT]:
        async with self._scope(session) as s:
            s.add_all(list(entities))
            try:
                await s.flush()
            except IntegrityError as e:
                logger.warning(f"Integrity error creating {self.model.__name__} batch: {e.orig}")
                raise duplicate_error(f"{self.model.__name__} already exists") from e
        return list(entities)

    async def update(
        self,
        entity_id: str,
        values: Dict[str, Any],
        version: Optional[int] = None,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """
        Write ``values`` to one row.

        When ``version`` is given the write is a compare-and-swap: it only
        applies if the stored version still equals ``version``. Every
        successful write bumps the version.

        Returns:
            True if exactly one row was written, False if the row is gone
            or its version moved on
        """
        stmt = update(self.model).where(self.model.id == entity_id)
        if version is not None:
            stmt = stmt.where(self.model.version == version)
        stmt = stmt.values(
            **values,
            version=self.model.version + 1,
            date_updated=utcnow(),
        ).execution_options(synchronize_session=False)

        async with self._scope(session) as s:
            try:
                result = await s.execute(stmt)
            except IntegrityError as e:
                logger.warning(f"Integrity error updating {self.model.__name__} {entity_id}: {e.orig}")
                raise duplicate_error(f"{self.model.__name__} already exists") from e
            return result.rowcount == 1

    async def remove(self, entity_id: str, session: Optional[AsyncSession] = None) -> bool:
        stmt = delete(self.model).where(self.model.id == entity_id)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.rowcount == 1

    async def remove_where(self, *criteria, session: Optional[AsyncSession] = None) -> int:
        """Delete every row matching the SQL ``criteria``; returns the count."""
        stmt = delete(self.model).where(*criteria)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.rowcount
