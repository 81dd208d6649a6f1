from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CleanupResponse(BaseModel):
    ok: bool
    deleted: int
    login_attempts_deleted: int
    request_id: str


class PasswordResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(default="", max_length=320)
    new_password: str = Field(default="", alias="newPassword", max_length=1024)


class DevPasswordRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=1024)


class PasswordUpdateResponse(BaseModel):
    ok: bool
    updated: int = 1
    request_id: str
