from __future__ import annotations

import re
from urllib.parse import urlsplit
from uuid import uuid4

from fastapi import HTTPException, Request, status

from src.core.config import settings

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,128}$")
_UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def create_request_id(request: Request) -> str:
    incoming = (request.headers.get("x-request-id") or "").strip()
    if _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid4().hex


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = create_request_id(request)
        request.state.request_id = request_id
    return request_id


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for") or ""
    first = forwarded_for.split(",")[0].strip()
    if first:
        return first

    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def is_https_request(request: Request) -> bool:
    forwarded_proto = (request.headers.get("x-forwarded-proto") or "").lower()
    return "https" in forwarded_proto or request.url.scheme == "https" or settings.is_production()


def _origin_of(value: str | None) -> str | None:
    if not value:
        return None
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def allowed_origins_for(request: Request) -> set[str]:
    allowed = {origin.lower() for origin in settings.allowed_origins()}
    host = (request.headers.get("host") or "").strip().lower()
    if host:
        allowed.add(f"https://{host}")
        allowed.add(f"http://{host}")
    return allowed


def _check_origin(request: Request, *, enforce_for_all_methods: bool) -> None:
    method = request.method.upper()
    if not enforce_for_all_methods and method not in _UNSAFE_METHODS:
        return

    raw_origin = request.headers.get("origin")
    origin = _origin_of(raw_origin) if raw_origin and raw_origin != "null" else None
    if origin is None:
        origin = _origin_of(request.headers.get("referer"))

    if origin is None:
        if method in _UNSAFE_METHODS or raw_origin == "null":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Origin not allowed",
            )
        return

    if origin not in allowed_origins_for(request):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Origin not allowed",
        )


async def validate_request_origin(request: Request) -> None:
    _check_origin(request, enforce_for_all_methods=False)


async def validate_request_origin_strict(request: Request) -> None:
    _check_origin(request, enforce_for_all_methods=True)


async def require_json_body(request: Request) -> None:
    if request.method.upper() not in _BODY_METHODS:
        return
    content_type = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
    if content_type != "application/json":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Expected application/json body",
        )
