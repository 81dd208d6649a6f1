from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.login_attempt import LoginAttempt


class LoginAttemptRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, key: str) -> LoginAttempt | None:
        return await self.session.scalar(select(LoginAttempt).where(LoginAttempt.key == key))

    async def save(
        self,
        key: str,
        *,
        attempts: int,
        first_attempt_at: datetime,
        locked_until: datetime | None,
        updated_at: datetime,
    ) -> None:
        values = {
            "attempts": attempts,
            "first_attempt_at": first_attempt_at,
            "locked_until": locked_until,
            "updated_at": updated_at,
        }
        stmt = insert(LoginAttempt).values(key=key, **values)
        await self.session.execute(
            stmt.on_conflict_do_update(index_elements=["key"], set_=values)
        )

    async def clear(self, key: str) -> None:
        await self.session.execute(delete(LoginAttempt).where(LoginAttempt.key == key))

    async def delete_stale(self, now: datetime, updated_before: datetime) -> int:
        result = await self.session.execute(
            delete(LoginAttempt).where(
                LoginAttempt.updated_at < updated_before,
                or_(
                    LoginAttempt.locked_until.is_(None),
                    LoginAttempt.locked_until <= now,
                ),
            )
        )
        return result.rowcount or 0
