from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import write_audit_log
from src.core.config import settings
from src.core.db import get_db_session
from src.core.guards import get_request_id, require_json_body
from src.core.lockout import LoginThrottle
from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.repositories.company_admins import AdminDirectory
from src.core.security.dependencies import get_password_hasher
from src.core.security.tokens import tokens_match
from src.core.tenancy import find_request_company
from src.models.base import utcnow
from src.schemas.admin import (
    CleanupResponse,
    DevPasswordRequest,
    PasswordResetRequest,
    PasswordUpdateResponse,
)

router = APIRouter(tags=["admin"])


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


@router.post("/cleanup-sessions", response_model=CleanupResponse)
async def cleanup_sessions(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    cleanup_secret: str | None = Header(default=None, alias="X-Cleanup-Secret"),
) -> CleanupResponse:
    request_id = get_request_id(request)
    if not tokens_match(settings.session_cleanup_secret, cleanup_secret):
        raise _unauthorized()

    now = utcnow()
    deleted = await AdminSessionRepository(session).delete_expired(now)
    attempts_deleted = await LoginThrottle(session).purge_stale(now)
    await session.commit()

    await write_audit_log(
        request_id=request_id,
        route="/api/cleanup-sessions",
        action="cleanup_sessions",
        result="ok",
        details={"deleted": deleted, "login_attempts_deleted": attempts_deleted},
    )
    return CleanupResponse(
        ok=True,
        deleted=deleted,
        login_attempts_deleted=attempts_deleted,
        request_id=request_id,
    )


@router.post(
    "/reset-admin-password",
    response_model=PasswordUpdateResponse,
    dependencies=[Depends(require_json_body)],
)
async def reset_admin_password(
    payload: PasswordResetRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    reset_secret: str | None = Header(default=None, alias="X-Reset-Secret"),
) -> PasswordUpdateResponse:
    request_id = get_request_id(request)
    if not settings.admin_reset_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_RESET_SECRET is not configured",
        )
    if not tokens_match(settings.admin_reset_secret, reset_secret):
        raise _unauthorized()

    email = payload.email.strip().lower()
    if not email or not payload.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing email or newPassword",
        )

    candidates = await AdminDirectory(session).find_by_email(email)
    company = await find_request_company(request, session)
    if company is not None:
        candidates = [admin for admin in candidates if admin.company_id == company.id]

    if not candidates:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Admin not found",
        )
    if len(candidates) > 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email belongs to admins of several companies; call from the company domain",
        )

    admin = candidates[0]
    hasher = get_password_hasher()
    admin.password_hash = await asyncio.to_thread(hasher.hash, payload.new_password)
    admin.sessions_revoked_at = utcnow()
    await AdminSessionRepository(session).delete_for_admin(admin.id, admin.company_id)
    await session.commit()

    await write_audit_log(
        request_id=request_id,
        route="/api/reset-admin-password",
        company_id=admin.company_id,
        admin_id=admin.id,
        action="reset_admin_password",
        result="ok",
    )
    return PasswordUpdateResponse(ok=True, updated=1, request_id=request_id)


@router.post(
    "/dev-set-password",
    response_model=PasswordUpdateResponse,
    dependencies=[Depends(require_json_body)],
)
async def dev_set_password(
    payload: DevPasswordRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    dev_secret: str | None = Header(default=None, alias="X-Dev-Secret"),
) -> PasswordUpdateResponse:
    if settings.is_production():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not found",
        )
    if not tokens_match(settings.admin_reset_secret, dev_secret):
        raise _unauthorized()

    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing email or password",
        )

    hasher = get_password_hasher()
    password_hash = await asyncio.to_thread(hasher.hash, payload.password)
    updated = await AdminDirectory(session).set_password_hash(email, password_hash)
    await session.commit()

    return PasswordUpdateResponse(ok=True, updated=len(updated), request_id=get_request_id(request))
