from __future__ import annotations

from contextvars import ContextVar
from typing import Final
from uuid import UUID

_CURRENT_COMPANY_ID: Final[ContextVar[UUID | None]] = ContextVar(
    "current_company_id",
    default=None,
)
_CURRENT_REQUEST_ID: Final[ContextVar[str | None]] = ContextVar(
    "current_request_id",
    default=None,
)


def set_current_company_id(company_id: UUID | None) -> object:
    return _CURRENT_COMPANY_ID.set(company_id)


def get_current_company_id() -> UUID | None:
    return _CURRENT_COMPANY_ID.get()


def reset_current_company_id(token: object) -> None:
    _CURRENT_COMPANY_ID.reset(token)


def set_current_request_id(request_id: str | None) -> object:
    return _CURRENT_REQUEST_ID.set(request_id)


def get_current_request_id() -> str | None:
    return _CURRENT_REQUEST_ID.get()


def reset_current_request_id(token: object) -> None:
    _CURRENT_REQUEST_ID.reset(token)
