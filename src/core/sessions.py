"""Admin session lifecycle.

The browser holds an opaque random token in an HttpOnly cookie; the database
only ever sees ``sha256(token)``. A session is valid while ``expires_at`` is in
the future and it was created after any company-wide or admin-wide revocation
stamp. Active sessions slide: once the remaining lifetime drops below the
renewal threshold the expiry is pushed out to a full TTL again.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.guards import is_https_request
from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.security.tokens import random_token, sha256_hex
from src.models.admin_session import AdminSession
from src.models.base import utcnow


@dataclass(slots=True)
class IssuedSession:
    token: str
    record: AdminSession


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def user_agent_hash(request: Request) -> str:
    return sha256_hex(request.headers.get("user-agent") or "")


async def issue_session(
    db: AsyncSession,
    *,
    admin_id: UUID,
    company_id: UUID,
    user_agent_digest: str,
    now: datetime | None = None,
) -> IssuedSession:
    now = now or utcnow()
    token = random_token(32)
    repository = AdminSessionRepository(db)

    if settings.login_invalidate_previous_sessions:
        await repository.delete_for_admin(admin_id, company_id)

    record = await repository.create(
        admin_id=admin_id,
        company_id=company_id,
        token_hash=sha256_hex(token),
        expires_at=now + timedelta(seconds=settings.session_ttl_seconds),
        created_at=now,
        updated_at=now,
        last_seen_at=now,
        user_agent_hash=user_agent_digest,
    )
    return IssuedSession(token=token, record=record)


def session_is_expired(record: AdminSession, now: datetime) -> bool:
    expires_at = _aware(record.expires_at)
    return expires_at is None or expires_at <= now


def session_is_revoked(record: AdminSession, *revocation_stamps: datetime | None) -> bool:
    created_at = _aware(record.created_at)
    for stamp in revocation_stamps:
        stamp = _aware(stamp)
        if stamp is not None and (created_at is None or created_at < stamp):
            return True
    return False


def user_agent_mismatch(record: AdminSession, current_digest: str) -> bool:
    if not settings.session_bind_user_agent or not record.user_agent_hash:
        return False
    return record.user_agent_hash != current_digest


def needs_renewal(record: AdminSession, now: datetime) -> bool:
    expires_at = _aware(record.expires_at)
    if expires_at is None:
        return False
    return expires_at - now < timedelta(seconds=settings.session_renew_threshold_seconds)


def should_touch(record: AdminSession, now: datetime) -> bool:
    last_seen_at = _aware(record.last_seen_at)
    if last_seen_at is None:
        return True
    return now - last_seen_at >= timedelta(seconds=settings.session_touch_interval_seconds)


def refresh_session(record: AdminSession, now: datetime) -> bool:
    """Apply sliding renewal in place. Returns True when the expiry moved."""
    renewed = needs_renewal(record, now)
    if renewed:
        record.expires_at = now + timedelta(seconds=settings.session_ttl_seconds)
    if renewed or should_touch(record, now):
        record.last_seen_at = now
    return renewed


def remaining_seconds(record: AdminSession, now: datetime) -> int:
    expires_at = _aware(record.expires_at)
    if expires_at is None:
        return 0
    return max(int((expires_at - now).total_seconds()), 0)


def set_session_cookie(request: Request, response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        path="/",
        secure=is_https_request(request),
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        expires="Thu, 01 Jan 1970 00:00:00 GMT",
        path="/",
        secure=settings.is_production(),
        httponly=True,
        samesite="lax",
    )
