from src.api.routes.admin import router as admin_router
from src.api.routes.auth import router as auth_router
from src.api.routes.billing import router as billing_router
from src.api.routes.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "auth_router",
    "billing_router",
    "webhooks_router",
]
