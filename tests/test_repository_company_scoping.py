from __future__ import annotations

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.core.context import reset_current_company_id, set_current_company_id
from src.core.repositories.base import CompanyContextMissingError, CompanyRepository
from src.core.repositories.members import MemberRepository
from src.models.member import Member


def _sql(stmt) -> str:  # noqa: ANN001
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_company_id_missing_raises() -> None:
    repo = CompanyRepository(session=Mock(), model=Member)

    with pytest.raises(CompanyContextMissingError):
        _ = repo.company_id


def test_scoped_select_contains_company_filter() -> None:
    company_id = uuid4()
    token = set_current_company_id(company_id)
    try:
        repo = CompanyRepository(session=Mock(), model=Member)
        sql = _sql(repo._scoped_select())

        assert "WHERE" in sql
        assert "members.company_id" in sql
        assert str(company_id) in sql
    finally:
        reset_current_company_id(token)


@pytest.mark.asyncio
async def test_create_injects_company_id() -> None:
    company_id = uuid4()
    token = set_current_company_id(company_id)
    try:
        session = Mock()
        session.add = Mock()
        session.flush = AsyncMock()
        session.refresh = AsyncMock()

        repo = CompanyRepository(session=session, model=Member)
        repo._apply_rls = AsyncMock()

        created = await repo.create(email="a@b.co", status="active", company_id=uuid4())

        assert created.company_id == company_id
        session.add.assert_called_once_with(created)
        session.flush.assert_awaited_once()
        session.refresh.assert_awaited_once_with(created)
    finally:
        reset_current_company_id(token)


@pytest.mark.asyncio
async def test_upsert_by_email_targets_company_and_email() -> None:
    company_id = uuid4()
    token = set_current_company_id(company_id)
    try:
        session = Mock()
        session.execute = AsyncMock()

        repo = MemberRepository(session)
        repo._apply_rls = AsyncMock()

        await repo.upsert_by_email("a@b.co", status="active", plan="pro", company_id=uuid4())

        compiled = session.execute.await_args.args[0].compile(dialect=postgresql.dialect())
        assert "ON CONFLICT (company_id, email) DO UPDATE" in str(compiled)
        assert compiled.params["company_id"] == company_id
        assert compiled.params["status"] == "active"
        assert compiled.params["email"] == "a@b.co"
    finally:
        reset_current_company_id(token)
