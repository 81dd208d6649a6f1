from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import write_audit_log
from src.core.config import settings
from src.core.db import get_db_session
from src.core.guards import get_request_id
from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.repositories.companies import CompanyLookupRepository
from src.core.repositories.company_admins import AdminDirectory
from src.core.security.tokens import sha256_hex
from src.core.sessions import (
    refresh_session,
    remaining_seconds,
    session_is_expired,
    session_is_revoked,
    set_session_cookie,
    user_agent_hash,
    user_agent_mismatch,
)
from src.core.tenancy import find_request_company
from src.models.admin_session import AdminSession
from src.models.base import utcnow
from src.models.company import Company
from src.models.company_admin import CompanyAdmin

PRIVILEGED_ROLES = frozenset({"owner", "superadmin"})


@dataclass(slots=True)
class AuthContext:
    session: AdminSession
    admin: CompanyAdmin
    request_id: str

    @property
    def admin_id(self) -> UUID:
        return self.session.admin_id

    @property
    def company_id(self) -> UUID:
        return self.session.company_id

    @property
    def role(self) -> str:
        return (self.admin.role or "").strip().lower()


def _no_session() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No session",
    )


async def _discard(db: AsyncSession, record: AdminSession) -> HTTPException:
    await AdminSessionRepository(db).delete_by_id(record.id)
    await db.commit()
    return _no_session()


async def require_admin_session(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthContext:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise _no_session()

    record = await AdminSessionRepository(db).get_by_token_hash(sha256_hex(token))
    if record is None:
        raise _no_session()

    now = utcnow()
    if session_is_expired(record, now):
        raise await _discard(db, record)

    admin = await AdminDirectory(db).get_by_id(record.admin_id)
    company = await CompanyLookupRepository(db).get(record.company_id)
    if admin is None or company is None or admin.company_id != record.company_id:
        raise await _discard(db, record)

    if session_is_revoked(record, company.sessions_revoked_at, admin.sessions_revoked_at):
        raise await _discard(db, record)

    if user_agent_mismatch(record, user_agent_hash(request)):
        raise await _discard(db, record)

    if refresh_session(record, now):
        set_session_cookie(request, response, token, remaining_seconds(record, now))
    await db.commit()

    request.state.admin_id = record.admin_id
    return AuthContext(session=record, admin=admin, request_id=get_request_id(request))


async def require_tenant(
    request: Request,
    auth: AuthContext = Depends(require_admin_session),
    db: AsyncSession = Depends(get_db_session),
) -> Company:
    company = await find_request_company(request, db)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company not found for host",
        )

    if company.id != auth.company_id:
        await write_audit_log(
            request_id=auth.request_id,
            route=request.url.path,
            company_id=company.id,
            admin_id=auth.admin_id,
            action="tenant_check",
            result="reject",
            error_code="TENANT_MISMATCH",
            details={"session_company_id": str(auth.company_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )

    return company


async def require_privileged_admin(
    request: Request,
    auth: AuthContext = Depends(require_admin_session),
    company: Company = Depends(require_tenant),
) -> AuthContext:
    if auth.role not in PRIVILEGED_ROLES:
        await write_audit_log(
            request_id=auth.request_id,
            route=request.url.path,
            company_id=company.id,
            admin_id=auth.admin_id,
            action="role_check",
            result="reject",
            error_code="INSUFFICIENT_ROLE",
            details={"role": auth.role or None},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return auth
