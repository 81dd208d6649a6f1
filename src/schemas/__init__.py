from src.schemas.admin import (
    CleanupResponse,
    DevPasswordRequest,
    PasswordResetRequest,
    PasswordUpdateResponse,
)
from src.schemas.auth import (
    CsrfTokenResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
    SessionProbeResponse,
)
from src.schemas.billing import (
    BillingWebhookResponse,
    CheckoutSessionRequest,
    PortalSessionRequest,
    RedirectResponse,
    SubscriptionStatusResponse,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "SessionProbeResponse",
    "CsrfTokenResponse",
    "OkResponse",
    "CheckoutSessionRequest",
    "PortalSessionRequest",
    "RedirectResponse",
    "SubscriptionStatusResponse",
    "BillingWebhookResponse",
    "CleanupResponse",
    "PasswordResetRequest",
    "DevPasswordRequest",
    "PasswordUpdateResponse",
]
