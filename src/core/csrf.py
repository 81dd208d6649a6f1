from __future__ import annotations

from fastapi import HTTPException, Request, Response, status

from src.core.config import settings
from src.core.guards import is_https_request
from src.core.security.tokens import random_token, tokens_match


def create_csrf_token() -> str:
    return random_token(32)


def set_csrf_cookie(request: Request, response: Response, token: str) -> None:
    # Readable from JS: the page echoes it back in the request header.
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=token,
        httponly=False,
        secure=is_https_request(request),
        samesite="lax",
        path="/",
        max_age=settings.session_ttl_seconds,
    )


async def require_csrf(request: Request) -> None:
    cookie_token = request.cookies.get(settings.csrf_cookie_name)
    header_token = request.headers.get(settings.csrf_header_name)
    if not tokens_match(cookie_token, header_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid CSRF token",
        )
