from __future__ import annotations

import logging
from uuid import UUID

from src.core import db
from src.core.repositories.audit_logs import AuditLogRepository

logger = logging.getLogger(__name__)


async def write_audit_log(
    *,
    route: str,
    action: str,
    result: str,
    request_id: str | None = None,
    company_id: UUID | None = None,
    admin_id: UUID | None = None,
    error_code: str | None = None,
    details: dict | None = None,
) -> None:
    """Best effort: an audit failure is logged and never changes the response."""
    try:
        async with db.AsyncSessionLocal() as session:
            await AuditLogRepository(session).add(
                request_id=request_id,
                route=route,
                company_id=company_id,
                admin_id=admin_id,
                action=action,
                result=result,
                error_code=error_code,
                details=details or {},
            )
            await session.commit()
    except Exception:
        logger.warning(
            "Audit log write failed route=%s action=%s result=%s",
            route,
            action,
            result,
            exc_info=True,
        )
