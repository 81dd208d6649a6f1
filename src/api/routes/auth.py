from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import write_audit_log
from src.core.auth import AuthContext, require_admin_session, require_privileged_admin, require_tenant
from src.core.config import settings
from src.core.csrf import create_csrf_token, require_csrf, set_csrf_cookie
from src.core.db import get_db_session
from src.core.guards import (
    get_client_ip,
    get_request_id,
    require_json_body,
    validate_request_origin,
    validate_request_origin_strict,
)
from src.core.lockout import LoginThrottle, build_login_key, is_locked
from src.core.logging import log_event
from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.repositories.companies import CompanyLookupRepository
from src.core.repositories.company_admins import CompanyAdminRepository
from src.core.security.dependencies import get_password_hasher
from src.core.security.tokens import sha256_hex
from src.core.sessions import clear_session_cookie, issue_session, set_session_cookie, user_agent_hash
from src.core.tenancy import find_request_company
from src.models.base import utcnow
from src.models.company import Company
from src.schemas.auth import (
    CsrfTokenResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
    SessionProbeResponse,
)

router = APIRouter(tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(validate_request_origin), Depends(require_json_body)],
)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    request_id = get_request_id(request)
    email = payload.email.strip().lower()
    password = payload.password
    if not email or not password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing email or password",
        )

    company = await find_request_company(request, db)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company not found for host",
        )

    ip = get_client_ip(request)
    login_key = build_login_key(ip, email)
    throttle = LoginThrottle(db)
    attempt = await throttle.current(login_key)

    if is_locked(attempt, utcnow()):
        await write_audit_log(
            request_id=request_id,
            route="/api/login",
            company_id=company.id,
            action="login",
            result="reject",
            error_code="LOGIN_LOCKED",
            details={"ip": ip},
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=INVALID_CREDENTIALS,
        )

    admin = await CompanyAdminRepository(db).get_by_email(email)
    hasher = get_password_hasher()
    if admin is None or not admin.password_hash:
        await asyncio.to_thread(hasher.burn, password)
        valid_password = False
    else:
        valid_password = await asyncio.to_thread(hasher.verify, password, admin.password_hash)

    if not valid_password:
        await throttle.register_failure(login_key, attempt)
        await db.commit()
        await write_audit_log(
            request_id=request_id,
            route="/api/login",
            company_id=company.id,
            admin_id=admin.id if admin else None,
            action="login",
            result="reject",
            error_code="INVALID_CREDENTIALS",
            details={"ip": ip},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    await throttle.clear(login_key)
    issued = await issue_session(
        db,
        admin_id=admin.id,
        company_id=company.id,
        user_agent_digest=user_agent_hash(request),
    )
    await db.commit()

    set_session_cookie(request, response, issued.token, settings.session_ttl_seconds)
    log_event(route="/api/login", company_id=company.id, admin_id=admin.id, result="ok")
    await write_audit_log(
        request_id=request_id,
        route="/api/login",
        company_id=company.id,
        admin_id=admin.id,
        action="login",
        result="ok",
        details={"ip": ip},
    )
    return LoginResponse(admin_id=admin.id, company_id=company.id, request_id=request_id)


@router.api_route("/logout", methods=["GET", "POST"], response_model=OkResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> OkResponse:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        await AdminSessionRepository(db).delete_by_token_hash(sha256_hex(token))
        await db.commit()

    clear_session_cookie(response)
    return OkResponse(ok=True, request_id=get_request_id(request))


@router.get(
    "/csrf",
    response_model=CsrfTokenResponse,
    dependencies=[Depends(validate_request_origin_strict)],
)
async def issue_csrf_token(request: Request, response: Response) -> CsrfTokenResponse:
    token = create_csrf_token()
    set_csrf_cookie(request, response, token)
    return CsrfTokenResponse(csrf_token=token, request_id=get_request_id(request))


@router.get("/session", response_model=SessionProbeResponse)
async def session_probe(auth: AuthContext = Depends(require_admin_session)) -> SessionProbeResponse:
    return SessionProbeResponse(
        admin_id=auth.admin_id,
        company_id=auth.company_id,
        expires_at=auth.session.expires_at,
        request_id=auth.request_id,
    )


@router.post(
    "/revoke-my-sessions",
    response_model=OkResponse,
    dependencies=[
        Depends(validate_request_origin),
        Depends(require_json_body),
        Depends(require_csrf),
    ],
)
async def revoke_my_sessions(
    request: Request,
    response: Response,
    auth: AuthContext = Depends(require_admin_session),
    company: Company = Depends(require_tenant),
    db: AsyncSession = Depends(get_db_session),
) -> OkResponse:
    revoked_at = utcnow()
    await CompanyAdminRepository(db).mark_sessions_revoked(auth.admin_id, revoked_at)
    deleted = await AdminSessionRepository(db).delete_for_admin(auth.admin_id, company.id)
    issued = await issue_session(
        db,
        admin_id=auth.admin_id,
        company_id=company.id,
        user_agent_digest=user_agent_hash(request),
        now=revoked_at,
    )
    await db.commit()

    set_session_cookie(request, response, issued.token, settings.session_ttl_seconds)
    await write_audit_log(
        request_id=auth.request_id,
        route="/api/revoke-my-sessions",
        company_id=company.id,
        admin_id=auth.admin_id,
        action="revoke_my_sessions",
        result="ok",
        details={"deleted": deleted},
    )
    return OkResponse(ok=True, request_id=auth.request_id)


@router.post(
    "/revoke-company-sessions",
    response_model=OkResponse,
    dependencies=[
        Depends(validate_request_origin),
        Depends(require_json_body),
        Depends(require_csrf),
    ],
)
async def revoke_company_sessions(
    request: Request,
    response: Response,
    auth: AuthContext = Depends(require_privileged_admin),
    company: Company = Depends(require_tenant),
    db: AsyncSession = Depends(get_db_session),
) -> OkResponse:
    revoked_at = utcnow()
    await CompanyLookupRepository(db).mark_sessions_revoked(company.id, revoked_at)
    deleted = await AdminSessionRepository(db).delete_for_company(company.id)
    issued = await issue_session(
        db,
        admin_id=auth.admin_id,
        company_id=company.id,
        user_agent_digest=user_agent_hash(request),
        now=revoked_at,
    )
    await db.commit()

    set_session_cookie(request, response, issued.token, settings.session_ttl_seconds)
    await write_audit_log(
        request_id=auth.request_id,
        route="/api/revoke-company-sessions",
        company_id=company.id,
        admin_id=auth.admin_id,
        action="revoke_company_sessions",
        result="ok",
        details={"deleted": deleted},
    )
    return OkResponse(ok=True, request_id=auth.request_id)
