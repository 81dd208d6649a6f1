from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import CompanyRepository
from src.models.company_admin import CompanyAdmin


class CompanyAdminRepository(CompanyRepository[CompanyAdmin]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=CompanyAdmin)

    async def get_by_email(self, email: str) -> CompanyAdmin | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(CompanyAdmin.email == email)
        )
        return result.scalar_one_or_none()

    async def mark_sessions_revoked(self, admin_id: UUID, revoked_at: datetime) -> None:
        await self._apply_rls()
        await self.session.execute(
            update(CompanyAdmin)
            .where(CompanyAdmin.id == admin_id)
            .where(CompanyAdmin.company_id == self.company_id)
            .values(sessions_revoked_at=revoked_at)
        )


class AdminDirectory:
    """Cross-company admin lookups used by the secret-protected maintenance endpoints."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, admin_id: UUID) -> CompanyAdmin | None:
        return await self.session.scalar(select(CompanyAdmin).where(CompanyAdmin.id == admin_id))

    async def find_by_email(self, email: str) -> list[CompanyAdmin]:
        result = await self.session.scalars(
            select(CompanyAdmin).where(CompanyAdmin.email == email).order_by(CompanyAdmin.created_at)
        )
        return list(result.all())

    async def set_password_hash(self, email: str, password_hash: str) -> list[CompanyAdmin]:
        admins = await self.find_by_email(email)
        for admin in admins:
            admin.password_hash = password_hash
        await self.session.flush()
        return admins
