"""SQLAlchemy-backed document store.

Every operation runs in its own session and commits on its own, so a
failure part-way through a batch never rolls back entities that were
already written.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reconciliation_engine.models import COLLECTION_MODELS, Base
from reconciliation_engine.models.base import META_COLUMNS
from reconciliation_engine.store.base import DocumentNotFoundError, DocumentStore


class UnknownFieldError(ValueError):
    """Raised when a document or filter names a field the table lacks."""

    def __init__(self, collection: str, fields: set[str]):
        self.collection = collection
        self.fields = fields
        super().__init__(f"Unknown fields for {collection}: {sorted(fields)}")


class SqlCollection:
    """Collection mapped onto one document table."""

    def __init__(
        self,
        name: str,
        model: type[Base],
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.name = name
        self.model = model
        self.session_factory = session_factory
        self._fields = {
            c.name for c in model.__table__.columns if c.name not in META_COLUMNS
        }

    async def list_all(self) -> list[dict[str, Any]]:
        async with self.session_factory() as session:
            result = await session.execute(select(self.model).order_by(self.model.pk))
            return [row.to_dict() for row in result.scalars().all()]

    async def get_by_id(self, document_id: str) -> dict[str, Any] | None:
        async with self.session_factory() as session:
            row = await self._load(session, document_id)
            return row.to_dict() if row is not None else None

    async def add(self, document: dict[str, Any]) -> str:
        values = {k: v for k, v in document.items() if k != "id"}
        self._check_fields(values)
        async with self.session_factory() as session:
            row = self.model(**values)
            session.add(row)
            await session.commit()
            return row.id

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        values = {k: v for k, v in fields.items() if k != "id"}
        self._check_fields(values)
        async with self.session_factory() as session:
            row = await self._load(session, document_id)
            if row is None:
                raise DocumentNotFoundError(self.name, document_id)
            for key, value in values.items():
                setattr(row, key, value)
            await session.commit()

    async def query(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        self._check_fields(filters)
        stmt = select(self.model).order_by(self.model.pk)
        for key, value in filters.items():
            column = getattr(self.model, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [row.to_dict() for row in result.scalars().all()]

    async def _load(self, session: AsyncSession, document_id: str) -> Base | None:
        result = await session.execute(
            select(self.model).where(self.model.id == document_id)
        )
        return result.scalar_one_or_none()

    def _check_fields(self, values: dict[str, Any]) -> None:
        unknown = set(values) - self._fields
        if unknown:
            raise UnknownFieldError(self.name, unknown)


class SqlDocumentStore(DocumentStore):
    """Document store backed by one SQL table per collection."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        super().__init__(
            **{
                name: SqlCollection(name, model, session_factory)
                for name, model in COLLECTION_MODELS.items()
            }
        )

    async def ping(self) -> bool:
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
