from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

import stripe
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import require_tenant
from src.core.config import settings
from src.core.db import get_db_session
from src.core.repositories.company_subscriptions import CompanySubscriptionRepository
from src.models.company import Company

PlanId = Literal["starter", "pro", "elite"]

PLANS: tuple[PlanId, ...] = ("starter", "pro", "elite")
ACTIVE_STATUSES = frozenset({"active", "trialing"})


class UnknownPlanError(ValueError):
    pass


def normalize_plan(plan_id: object) -> str:
    return str(plan_id or "").strip().lower()


def missing_price_ids() -> list[str]:
    return [
        f"STRIPE_PRICE_ID_{plan.upper()}"
        for plan, price_id in settings.plan_price_ids().items()
        if not price_id
    ]


def price_id_for_plan(plan_id: object) -> str:
    plan = normalize_plan(plan_id)
    price_id = settings.plan_price_ids().get(plan)
    if not price_id:
        raise UnknownPlanError(f"Unknown planId: {plan_id}")
    return price_id


def plan_for_price_id(price_id: str | None) -> str:
    if not price_id:
        return "unknown"
    for plan, configured in settings.plan_price_ids().items():
        if configured and configured == price_id:
            return plan
    return "unknown"


def subscription_is_active(status_value: str | None) -> bool:
    return (status_value or "").strip().lower() in ACTIVE_STATUSES


def to_plain(obj: Any) -> dict:
    """Turn a Stripe SDK object (or an already plain dict) into nested dicts."""
    if obj is None:
        return {}
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return obj.to_dict()


def first_price_id(subscription: dict) -> str | None:
    items = ((subscription.get("items") or {}).get("data")) or []
    if not items:
        return None
    return ((items[0] or {}).get("price") or {}).get("id")


def subscription_period_end(subscription: dict) -> datetime | None:
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        # Newer API versions moved the billing period onto the subscription items.
        items = ((subscription.get("items") or {}).get("data")) or []
        if items:
            timestamp = (items[0] or {}).get("current_period_end")
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


class StripeBillingClient:
    def __init__(self) -> None:
        self.api_key = settings.stripe_secret_key

    def _require_key(self) -> str:
        if not self.api_key:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="STRIPE_SECRET_KEY is not configured",
            )
        return self.api_key

    def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: str | None,
        metadata: dict[str, str],
        subscription_metadata: dict[str, str],
    ) -> dict:
        params: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "subscription_data": {"metadata": subscription_metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email
        session = stripe.checkout.Session.create(api_key=self._require_key(), **params)
        return to_plain(session)

    def create_portal_session(self, *, customer_id: str, return_url: str) -> dict:
        session = stripe.billing_portal.Session.create(
            api_key=self._require_key(),
            customer=customer_id,
            return_url=return_url,
        )
        return to_plain(session)

    def retrieve_subscription(self, subscription_id: str) -> dict:
        return to_plain(stripe.Subscription.retrieve(subscription_id, api_key=self._require_key()))

    def retrieve_customer(self, customer_id: str) -> dict:
        return to_plain(stripe.Customer.retrieve(customer_id, api_key=self._require_key()))


@dataclass(slots=True)
class SubscriptionState:
    status: str
    active: bool
    plan: str | None
    price_id: str | None
    current_period_end: datetime | None


async def get_company_subscription_state(
    _: Company = Depends(require_tenant),
    session: AsyncSession = Depends(get_db_session),
) -> SubscriptionState:
    record = await CompanySubscriptionRepository(session).get_current()
    if record is None:
        return SubscriptionState(
            status="none",
            active=False,
            plan=None,
            price_id=None,
            current_period_end=None,
        )

    return SubscriptionState(
        status=record.status,
        active=subscription_is_active(record.status),
        plan=plan_for_price_id(record.price_id) if record.price_id else None,
        price_id=record.price_id,
        current_period_end=record.current_period_end,
    )


async def require_active_subscription(
    state: SubscriptionState = Depends(get_company_subscription_state),
) -> SubscriptionState:
    if not state.active:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Active subscription required",
        )
    return state
