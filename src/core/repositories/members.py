from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import CompanyRepository
from src.models.member import Member


class MemberRepository(CompanyRepository[Member]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Member)

    async def get_by_email(self, email: str) -> Member | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(Member.email == email)
        )
        return result.scalar_one_or_none()

    async def get_by_customer_id(self, customer_id: str) -> Member | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(Member.stripe_customer_id == customer_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert_by_email(self, email: str, **values: object) -> None:
        await self.upsert(("company_id", "email"), email=email, **values)
