from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.core.audit import write_audit_log
from src.core.context import reset_current_company_id, set_current_company_id
from src.core.db import apply_rls_company_context, get_db_session
from src.core.repositories import (
    AdminDirectory,
    AdminSessionRepository,
    CompanyAdminRepository,
    CompanyRepository,
    CompanySubscriptionRepository,
    LoginAttemptRepository,
    MemberRepository,
)
from src.models.member import Member

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_apply_rls_company_context_executes_sql() -> None:
    session = Mock()
    session.execute = AsyncMock()
    company_id = uuid4()

    await apply_rls_company_context(session, company_id)

    session.execute.assert_awaited_once()
    assert session.execute.await_args.args[1] == {"company_id": str(company_id)}


@pytest.mark.asyncio
async def test_get_db_session_yields_session(monkeypatch: pytest.MonkeyPatch) -> None:
    sentinel = object()

    class _Ctx:
        async def __aenter__(self):
            return sentinel

        async def __aexit__(self, exc_type, exc, tb):  # noqa: ANN001
            return None

    from src.core import db

    monkeypatch.setattr(db, "AsyncSessionLocal", lambda: _Ctx())

    agen = get_db_session()
    value = await agen.__anext__()
    assert value is sentinel

    with pytest.raises(StopAsyncIteration):
        await agen.__anext__()


@pytest.mark.asyncio
async def test_company_repository_get_update_delete() -> None:
    company_id = uuid4()
    token = set_current_company_id(company_id)
    try:
        entity = Member(id=uuid4(), company_id=company_id, email="a@b.co", status="incomplete")

        execute_values = [
            SimpleNamespace(scalar_one_or_none=lambda: entity),
            SimpleNamespace(scalar_one_or_none=lambda: entity),
            SimpleNamespace(rowcount=1),
        ]

        async def _execute(_stmt):  # noqa: ANN001
            return execute_values.pop(0)

        session = Mock()
        session.execute = AsyncMock(side_effect=_execute)
        session.flush = AsyncMock()
        session.refresh = AsyncMock()

        repo = CompanyRepository(session=session, model=Member)
        repo._apply_rls = AsyncMock()

        got = await repo.get(entity.id)
        updated = await repo.update(entity.id, status="active", id=uuid4(), company_id=uuid4())
        deleted = await repo.delete(entity.id)

        assert got is entity
        assert updated is entity
        assert entity.status == "active"
        assert entity.company_id == company_id
        assert deleted is True
    finally:
        reset_current_company_id(token)


def test_concrete_repositories_are_company_scoped() -> None:
    session = Mock()

    assert isinstance(MemberRepository(session), CompanyRepository)
    assert isinstance(CompanyAdminRepository(session), CompanyRepository)
    assert isinstance(CompanySubscriptionRepository(session), CompanyRepository)


@pytest.mark.asyncio
async def test_company_scoped_lookups_return_single_row() -> None:
    company_id = uuid4()
    token = set_current_company_id(company_id)
    try:
        expected = object()
        session = Mock()
        session.execute = AsyncMock(return_value=SimpleNamespace(scalar_one_or_none=lambda: expected))

        admins = CompanyAdminRepository(session)
        admins._apply_rls = AsyncMock()
        assert await admins.get_by_email("a@b.co") is expected

        members = MemberRepository(session)
        members._apply_rls = AsyncMock()
        assert await members.get_by_email("a@b.co") is expected
        assert await members.get_by_customer_id("cus_1") is expected

        subscriptions = CompanySubscriptionRepository(session)
        subscriptions._apply_rls = AsyncMock()
        assert await subscriptions.get_current() is expected
    finally:
        reset_current_company_id(token)


@pytest.mark.asyncio
async def test_admin_session_deletes_report_rowcount() -> None:
    session = Mock()
    session.execute = AsyncMock(return_value=SimpleNamespace(rowcount=4))
    repo = AdminSessionRepository(session)

    assert await repo.delete_expired(NOW) == 4
    assert await repo.delete_for_company(uuid4()) == 4
    assert await repo.delete_for_admin(uuid4(), uuid4()) == 4

    sql = str(session.execute.await_args_list[0].args[0].compile(dialect=postgresql.dialect()))
    assert "DELETE FROM admin_sessions" in sql
    assert "admin_sessions.expires_at <=" in sql


@pytest.mark.asyncio
async def test_login_attempt_cleanup_keeps_active_locks() -> None:
    session = Mock()
    session.execute = AsyncMock(return_value=SimpleNamespace(rowcount=None))
    repo = LoginAttemptRepository(session)

    assert await repo.delete_stale(NOW, NOW) == 0

    sql = str(session.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
    assert "login_attempts.updated_at <" in sql
    assert "login_attempts.locked_until IS NULL OR login_attempts.locked_until <=" in sql


@pytest.mark.asyncio
async def test_admin_directory_sets_hash_on_every_match() -> None:
    first = SimpleNamespace(password_hash="old")
    second = SimpleNamespace(password_hash="old")
    session = Mock()
    session.scalars = AsyncMock(return_value=SimpleNamespace(all=lambda: [first, second]))
    session.flush = AsyncMock()

    updated = await AdminDirectory(session).set_password_hash("a@b.co", "new-hash")

    assert updated == [first, second]
    assert first.password_hash == "new-hash"
    assert second.password_hash == "new-hash"
    session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_write_audit_log_never_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    from src.core import db

    class _Broken:
        async def __aenter__(self):
            raise RuntimeError("database down")

        async def __aexit__(self, exc_type, exc, tb):  # noqa: ANN001
            return None

    monkeypatch.setattr(db, "AsyncSessionLocal", lambda: _Broken())

    await write_audit_log(route="/api/login", action="login", result="reject")


@pytest.mark.asyncio
async def test_write_audit_log_persists_row(monkeypatch: pytest.MonkeyPatch) -> None:
    from src.core import db

    session = Mock()
    session.add = Mock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()

    class _Ctx:
        async def __aenter__(self):
            return session

        async def __aexit__(self, exc_type, exc, tb):  # noqa: ANN001
            return None

    monkeypatch.setattr(db, "AsyncSessionLocal", lambda: _Ctx())

    await write_audit_log(
        route="/api/login",
        action="login",
        result="reject",
        error_code="INVALID_CREDENTIALS",
        request_id="rid-12345",
    )

    entry = session.add.call_args.args[0]
    assert entry.route == "/api/login"
    assert entry.error_code == "INVALID_CREDENTIALS"
    assert entry.details == {}
    session.commit.assert_awaited_once()
