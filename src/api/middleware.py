from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Request
from starlette.responses import Response

from src.api.errors import unhandled_exception_handler
from src.core.config import settings
from src.core.context import (
    reset_current_company_id,
    reset_current_request_id,
    set_current_company_id,
    set_current_request_id,
)
from src.core.guards import create_request_id

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def apply_security_headers(request: Request, response: Response) -> None:
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"
    if settings.is_production():
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = create_request_id(request)
    request.state.request_id = request_id

    request_token = set_current_request_id(request_id)
    company_token = set_current_company_id(None)
    try:
        response = await call_next(request)
    except Exception as exc:
        response = await unhandled_exception_handler(request, exc)
    finally:
        reset_current_company_id(company_token)
        reset_current_request_id(request_token)

    response.headers["X-Request-Id"] = request_id
    apply_security_headers(request, response)
    return response
