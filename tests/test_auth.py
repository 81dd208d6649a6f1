from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi import HTTPException, Response

from src.core import auth
from src.core.auth import AuthContext, require_admin_session, require_privileged_admin, require_tenant
from src.core.security.tokens import sha256_hex
from src.models.base import utcnow


class _FakeDb:
    def __init__(self) -> None:
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1


def _request(token: str | None = "tok", user_agent: str = "Mozilla/5.0"):  # noqa: ANN202
    cookies = {auth.settings.session_cookie_name: token} if token else {}
    return SimpleNamespace(
        cookies=cookies,
        headers={"user-agent": user_agent, "host": "shop.example.com"},
        url=SimpleNamespace(scheme="https", path="/api/session"),
        state=SimpleNamespace(),
    )


def _fixture_rows(**session_overrides):  # noqa: ANN003, ANN202
    now = utcnow()
    company = SimpleNamespace(id=uuid4(), sessions_revoked_at=None)
    admin = SimpleNamespace(id=uuid4(), company_id=company.id, role="admin", sessions_revoked_at=None)
    record = SimpleNamespace(
        id=uuid4(),
        admin_id=admin.id,
        company_id=company.id,
        token_hash=sha256_hex("tok"),
        created_at=now - timedelta(hours=1),
        expires_at=now + timedelta(days=6),
        last_seen_at=now - timedelta(seconds=5),
        user_agent_hash=sha256_hex("Mozilla/5.0"),
    )
    for key, value in session_overrides.items():
        setattr(record, key, value)
    return company, admin, record


def _install(monkeypatch: pytest.MonkeyPatch, company, admin, record):  # noqa: ANN001, ANN202
    deleted: list = []

    class Sessions:
        def __init__(self, db) -> None:  # noqa: ANN001
            pass

        async def get_by_token_hash(self, token_hash):  # noqa: ANN001
            return record if record is not None and token_hash == record.token_hash else None

        async def delete_by_id(self, session_id):  # noqa: ANN001
            deleted.append(session_id)
            return 1

    class Directory:
        def __init__(self, db) -> None:  # noqa: ANN001
            pass

        async def get_by_id(self, admin_id):  # noqa: ANN001
            return admin

    class Companies:
        def __init__(self, db) -> None:  # noqa: ANN001
            pass

        async def get(self, company_id):  # noqa: ANN001
            return company

    monkeypatch.setattr(auth, "AdminSessionRepository", Sessions)
    monkeypatch.setattr(auth, "AdminDirectory", Directory)
    monkeypatch.setattr(auth, "CompanyLookupRepository", Companies)
    return deleted


@pytest.mark.asyncio
async def test_valid_session_returns_context(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    deleted = _install(monkeypatch, company, admin, record)
    db = _FakeDb()
    response = Response()

    ctx = await require_admin_session(_request(), response, db)

    assert ctx.admin_id == admin.id
    assert ctx.company_id == company.id
    assert ctx.role == "admin"
    assert deleted == []
    assert db.commits == 1
    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_missing_cookie_or_unknown_token_is_401(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    _install(monkeypatch, company, admin, record)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(token=None), Response(), _FakeDb())
    assert exc.value.status_code == 401
    assert exc.value.detail == "No session"

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(token="forged"), Response(), _FakeDb())
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_expired_session_is_deleted(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows(expires_at=utcnow() - timedelta(seconds=1))
    deleted = _install(monkeypatch, company, admin, record)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(), Response(), _FakeDb())

    assert exc.value.status_code == 401
    assert deleted == [record.id]


@pytest.mark.asyncio
async def test_company_revocation_invalidates_older_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    company.sessions_revoked_at = utcnow() - timedelta(minutes=1)
    deleted = _install(monkeypatch, company, admin, record)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(), Response(), _FakeDb())

    assert exc.value.status_code == 401
    assert deleted == [record.id]


@pytest.mark.asyncio
async def test_admin_revocation_invalidates_older_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    admin.sessions_revoked_at = utcnow()
    _install(monkeypatch, company, admin, record)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(), Response(), _FakeDb())
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_admin_moved_to_other_company_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    admin.company_id = uuid4()
    _install(monkeypatch, company, admin, record)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(), Response(), _FakeDb())
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_user_agent_binding(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows()
    _install(monkeypatch, company, admin, record)
    monkeypatch.setattr(auth.settings, "session_bind_user_agent", True)

    with pytest.raises(HTTPException) as exc:
        await require_admin_session(_request(user_agent="curl/8"), Response(), _FakeDb())
    assert exc.value.status_code == 401

    ctx = await require_admin_session(_request(), Response(), _FakeDb())
    assert ctx.admin_id == admin.id


@pytest.mark.asyncio
async def test_session_near_expiry_is_renewed(monkeypatch: pytest.MonkeyPatch) -> None:
    company, admin, record = _fixture_rows(expires_at=utcnow() + timedelta(minutes=30))
    _install(monkeypatch, company, admin, record)
    monkeypatch.setattr(auth.settings, "session_ttl_seconds", 7 * 24 * 3600)
    monkeypatch.setattr(auth.settings, "session_renew_threshold_seconds", 24 * 3600)
    response = Response()

    await require_admin_session(_request(), response, _FakeDb())

    assert record.expires_at > utcnow() + timedelta(days=6)
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{auth.settings.session_cookie_name}=tok")
    assert "HttpOnly" in cookie


def _ctx(role: str = "admin", company_id=None) -> AuthContext:  # noqa: ANN001
    company_id = company_id or uuid4()
    admin = SimpleNamespace(id=uuid4(), company_id=company_id, role=role)
    record = SimpleNamespace(admin_id=admin.id, company_id=company_id)
    return AuthContext(session=record, admin=admin, request_id="rid-12345")


@pytest.mark.asyncio
async def test_require_tenant_matches_session_company(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx()
    company = SimpleNamespace(id=ctx.company_id)
    monkeypatch.setattr(auth, "find_request_company", AsyncMock(return_value=company))

    assert await require_tenant(_request(), ctx, object()) is company


@pytest.mark.asyncio
async def test_require_tenant_rejects_other_company_and_audits(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx()
    audit = AsyncMock()
    monkeypatch.setattr(auth, "find_request_company", AsyncMock(return_value=SimpleNamespace(id=uuid4())))
    monkeypatch.setattr(auth, "write_audit_log", audit)

    with pytest.raises(HTTPException) as exc:
        await require_tenant(_request(), ctx, object())

    assert exc.value.status_code == 403
    assert audit.await_args.kwargs["error_code"] == "TENANT_MISMATCH"


@pytest.mark.asyncio
async def test_require_tenant_unknown_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(auth, "find_request_company", AsyncMock(return_value=None))

    with pytest.raises(HTTPException) as exc:
        await require_tenant(_request(), _ctx(), object())
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_require_privileged_admin(monkeypatch: pytest.MonkeyPatch) -> None:
    audit = AsyncMock()
    monkeypatch.setattr(auth, "write_audit_log", audit)

    owner = _ctx(role="Owner")
    company = SimpleNamespace(id=owner.company_id)
    assert await require_privileged_admin(_request(), owner, company) is owner

    with pytest.raises(HTTPException) as exc:
        await require_privileged_admin(_request(), _ctx(role="admin"), company)
    assert exc.value.status_code == 403
    assert audit.await_args.kwargs["error_code"] == "INSUFFICIENT_ROLE"
