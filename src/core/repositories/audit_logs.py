from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit_log import AuditLog


class AuditLogRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, **values: object) -> AuditLog:
        entry = AuditLog(**values)
        self.session.add(entry)
        await self.session.flush()
        return entry
