from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str | None = Field(default=None, alias="planId", max_length=50)
    success_url: str | None = Field(default=None, max_length=2048)
    cancel_url: str | None = Field(default=None, max_length=2048)
    customer_email: str | None = Field(default=None, max_length=320)
    email: str | None = Field(default=None, max_length=320)


class PortalSessionRequest(BaseModel):
    email: str = Field(default="", max_length=320)


class RedirectResponse(BaseModel):
    url: str
    request_id: str


class SubscriptionStatusResponse(BaseModel):
    status: str
    active: bool
    plan: str | None = None
    price_id: str | None = None
    current_period_end: datetime | None = None
    request_id: str


class BillingWebhookResponse(BaseModel):
    received: bool
    event_type: str | None = None
    company_id: str | None = None
    updated: bool = False
