from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=1024)


class LoginResponse(BaseModel):
    admin_id: UUID
    company_id: UUID
    request_id: str


class SessionProbeResponse(BaseModel):
    admin_id: UUID
    company_id: UUID
    expires_at: datetime
    request_id: str


class CsrfTokenResponse(BaseModel):
    csrf_token: str
    request_id: str


class OkResponse(BaseModel):
    ok: bool = True
    request_id: str | None = None
