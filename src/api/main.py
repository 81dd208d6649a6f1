from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from src.api.errors import register_exception_handlers
from src.api.middleware import request_context_middleware
from src.api.routes.admin import router as admin_router
from src.api.routes.auth import router as auth_router
from src.api.routes.billing import router as billing_router
from src.api.routes.webhooks import router as webhooks_router
from src.core.config import settings
from src.core.logging import configure_logging

configure_logging(settings.log_level)

app = FastAPI(title="Bunker")
app.middleware("http")(request_context_middleware)
register_exception_handlers(app)
app.include_router(auth_router, prefix="/api")
app.include_router(billing_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
