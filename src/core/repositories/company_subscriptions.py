from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import CompanyRepository
from src.models.company_subscription import CompanySubscription


class CompanySubscriptionRepository(CompanyRepository[CompanySubscription]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=CompanySubscription)

    async def get_current(self) -> CompanySubscription | None:
        await self._apply_rls()
        result = await self.session.execute(self._scoped_select())
        return result.scalar_one_or_none()

    async def upsert_current(self, **values: object) -> None:
        await self.upsert(("company_id",), **values)
