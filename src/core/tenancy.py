from __future__ import annotations

from urllib.parse import urlsplit

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.context import set_current_company_id
from src.core.db import get_db_session
from src.core.repositories.companies import CompanyLookupRepository
from src.models.company import Company


def normalize_host(host: str | None) -> str:
    value = str(host or "").strip().lower().split(":")[0]
    if value.startswith("www."):
        value = value[len("www."):]
    return value


def _url_host(value: str | None) -> str | None:
    if not value:
        return None
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts.netloc


def request_domain(request: Request) -> str | None:
    """Host the visitor is browsing: Origin, then Referer, then the Host header."""
    return (
        _url_host(request.headers.get("origin"))
        or _url_host(request.headers.get("referer"))
        or request.headers.get("host")
        or None
    )


async def get_company_by_host(session: AsyncSession, raw_host: str | None) -> Company | None:
    host = normalize_host(raw_host)
    if not host:
        return None
    return await CompanyLookupRepository(session).get_by_domain(host)


async def find_request_company(request: Request, session: AsyncSession) -> Company | None:
    company = await get_company_by_host(session, request.headers.get("host"))
    if company is not None:
        request.state.company_id = company.id
        set_current_company_id(company.id)
    return company


async def get_request_company(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> Company:
    company = await find_request_company(request, session)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company not found for host",
        )
    return company
