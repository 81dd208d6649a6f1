from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.company import Company


class CompanyLookupRepository:
    """Company reads happen before any tenant context exists, so they are not scoped."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_domain(self, domain: str) -> Company | None:
        return await self.session.scalar(select(Company).where(Company.domain == domain))

    async def get(self, company_id: UUID) -> Company | None:
        return await self.session.scalar(select(Company).where(Company.id == company_id))

    async def mark_sessions_revoked(self, company_id: UUID, revoked_at: datetime) -> None:
        await self.session.execute(
            update(Company)
            .where(Company.id == company_id)
            .values(sessions_revoked_at=revoked_at)
        )
