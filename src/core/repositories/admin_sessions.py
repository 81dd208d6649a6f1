from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.admin_session import AdminSession


class AdminSessionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, **values: object) -> AdminSession:
        instance = AdminSession(**values)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def get_by_token_hash(self, token_hash: str) -> AdminSession | None:
        return await self.session.scalar(
            select(AdminSession).where(AdminSession.token_hash == token_hash)
        )

    async def delete_by_id(self, session_id: UUID) -> int:
        result = await self.session.execute(delete(AdminSession).where(AdminSession.id == session_id))
        return result.rowcount or 0

    async def delete_by_token_hash(self, token_hash: str) -> int:
        result = await self.session.execute(
            delete(AdminSession).where(AdminSession.token_hash == token_hash)
        )
        return result.rowcount or 0

    async def delete_for_admin(self, admin_id: UUID, company_id: UUID) -> int:
        result = await self.session.execute(
            delete(AdminSession)
            .where(AdminSession.admin_id == admin_id)
            .where(AdminSession.company_id == company_id)
        )
        return result.rowcount or 0

    async def delete_for_company(self, company_id: UUID) -> int:
        result = await self.session.execute(
            delete(AdminSession).where(AdminSession.company_id == company_id)
        )
        return result.rowcount or 0

    async def delete_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(AdminSession).where(AdminSession.expires_at <= now)
        )
        return result.rowcount or 0
