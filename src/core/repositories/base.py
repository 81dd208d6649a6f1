from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from src.core.context import get_current_company_id
from src.core.db import apply_rls_company_context
from src.models.base import CompanyScopedBase, utcnow

ModelT = TypeVar("ModelT", bound=CompanyScopedBase)


class CompanyContextMissingError(RuntimeError):
    pass


class CompanyRepository(Generic[ModelT]):
    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    @property
    def company_id(self) -> UUID:
        company_id = get_current_company_id()
        if company_id is None:
            raise CompanyContextMissingError("Company context is missing from the current request")
        return company_id

    async def _apply_rls(self) -> None:
        await apply_rls_company_context(self.session, self.company_id)

    def _scoped_select(self) -> Select[tuple[ModelT]]:
        return select(self.model).where(self.model.company_id == self.company_id)

    async def create(self, **values: object) -> ModelT:
        await self._apply_rls()
        payload = dict(values)
        payload["company_id"] = self.company_id
        instance = self.model(**payload)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get(self, entity_id: UUID) -> ModelT | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(self.model.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def update(self, entity_id: UUID, **values: object) -> ModelT | None:
        instance = await self.get(entity_id)
        if instance is None:
            return None

        for field, value in values.items():
            if field in {"id", "company_id"}:
                continue
            setattr(instance, field, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def upsert(self, conflict_columns: Sequence[str], **values: object) -> None:
        """Insert a row for the current company or update the row matching ``conflict_columns``."""
        await self._apply_rls()
        now = utcnow()
        payload = dict(values)
        payload["company_id"] = self.company_id
        payload.setdefault("updated_at", now)

        stmt = insert(self.model).values(created_at=now, **payload)
        updates = {
            key: stmt.excluded[key]
            for key in payload
            if key not in set(conflict_columns) and key != "company_id"
        }
        await self.session.execute(
            stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=updates)
        )

    async def delete(self, entity_id: UUID) -> bool:
        await self._apply_rls()
        result = await self.session.execute(
            delete(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.company_id == self.company_id)
        )
        return (result.rowcount or 0) > 0
