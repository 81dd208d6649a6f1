from __future__ import annotations

import asyncio
import json
import logging
from uuid import UUID

import redis.asyncio as redis
import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.billing import (
    StripeBillingClient,
    first_price_id,
    plan_for_price_id,
    subscription_period_end,
)
from src.core.config import settings
from src.core.context import reset_current_company_id, set_current_company_id
from src.core.db import get_db_session
from src.core.logging import log_event
from src.core.repositories.companies import CompanyLookupRepository
from src.core.repositories.company_subscriptions import CompanySubscriptionRepository
from src.core.repositories.members import MemberRepository
from src.schemas.billing import BillingWebhookResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_EVENTS = frozenset(
    {
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
    }
)


def _metadata_company_id(obj: dict | None) -> str | None:
    metadata = (obj or {}).get("metadata") or {}
    value = metadata.get("company_id") or metadata.get("companyId")
    return str(value) if value else None


def _as_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _verify_and_parse_event(raw_body: bytes, stripe_signature: str | None) -> dict:
    if not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="STRIPE_WEBHOOK_SECRET is not configured",
        )

    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook Error: Missing stripe-signature header",
        )

    try:
        stripe.Webhook.construct_event(
            payload=raw_body,
            sig_header=stripe_signature,
            secret=settings.stripe_webhook_secret,
        )
        return json.loads(raw_body.decode("utf-8"))
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {exc}",
        ) from exc


async def _resolve_company_id(client: StripeBillingClient, obj: dict) -> str | None:
    company_id = _metadata_company_id(obj)
    if company_id:
        return company_id

    customer_id = obj.get("customer")
    if customer_id:
        customer = await asyncio.to_thread(client.retrieve_customer, customer_id)
        if not customer.get("deleted"):
            company_id = _metadata_company_id(customer)
            if company_id:
                return company_id

    object_type = obj.get("object")
    subscription_id = obj.get("subscription") or obj.get("id")
    if subscription_id and object_type in {"invoice", "subscription"}:
        subscription = await asyncio.to_thread(client.retrieve_subscription, subscription_id)
        return _metadata_company_id(subscription)

    return None


async def _publish_subscription_state(company_id: UUID, subscription_status: str) -> None:
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        await redis_client.set(f"company:subscription_status:{company_id}", subscription_status)
        await redis_client.publish(f"billing:company_status:{company_id}", subscription_status)
    finally:
        await redis_client.aclose()


async def _handle_checkout_completed(
    session: AsyncSession,
    client: StripeBillingClient,
    checkout: dict,
) -> str | None:
    members = MemberRepository(session)
    subscriptions = CompanySubscriptionRepository(session)

    email = ((checkout.get("customer_details") or {}).get("email")) or checkout.get("customer_email")
    metadata = checkout.get("metadata") or {}
    if email:
        await members.upsert_by_email(
            str(email).strip().lower(),
            stripe_customer_id=checkout.get("customer"),
            stripe_subscription_id=checkout.get("subscription"),
            status="active",
            plan=metadata.get("plan") or metadata.get("planId"),
        )

    subscription_status = None
    subscription_id = checkout.get("subscription")
    if subscription_id:
        subscription = await asyncio.to_thread(client.retrieve_subscription, subscription_id)
        subscription_status = subscription.get("status")
        await subscriptions.upsert_current(
            stripe_customer_id=checkout.get("customer"),
            stripe_subscription_id=subscription_id,
            status=subscription_status or "unknown",
            price_id=first_price_id(subscription),
            current_period_end=subscription_period_end(subscription),
        )
    return subscription_status


async def _handle_subscription_change(session: AsyncSession, subscription: dict) -> str:
    members = MemberRepository(session)
    subscriptions = CompanySubscriptionRepository(session)

    price_id = first_price_id(subscription)
    customer_id = subscription.get("customer")
    subscription_status = subscription.get("status") or "unknown"

    member = await members.get_by_customer_id(customer_id) if customer_id else None
    if member is not None:
        await members.upsert_by_email(
            member.email,
            stripe_customer_id=customer_id,
            stripe_subscription_id=subscription.get("id"),
            status=subscription_status,
            plan=plan_for_price_id(price_id),
        )

    await subscriptions.upsert_current(
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription.get("id"),
        status=subscription_status,
        price_id=price_id,
        current_period_end=subscription_period_end(subscription),
    )
    return subscription_status


@router.post("/stripe-webhook", response_model=BillingWebhookResponse)
async def stripe_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
) -> BillingWebhookResponse:
    raw_body = await request.body()
    event = _verify_and_parse_event(raw_body, stripe_signature)
    event_type = event.get("type", "unknown")

    if event_type != CHECKOUT_COMPLETED and event_type not in SUBSCRIPTION_EVENTS:
        return BillingWebhookResponse(received=True, event_type=event_type)

    obj = (event.get("data") or {}).get("object") or {}
    client = StripeBillingClient()
    company_id = _as_uuid(await _resolve_company_id(client, obj))
    if company_id is None:
        logger.warning("Stripe event %s has no resolvable company", event.get("id"))
        return BillingWebhookResponse(received=True, event_type=event_type)

    company = await CompanyLookupRepository(session).get(company_id)
    if company is None:
        logger.warning("Stripe event %s references unknown company=%s", event.get("id"), company_id)
        return BillingWebhookResponse(received=True, event_type=event_type)

    token = set_current_company_id(company.id)
    try:
        if event_type == CHECKOUT_COMPLETED:
            subscription_status = await _handle_checkout_completed(session, client, obj)
        else:
            subscription_status = await _handle_subscription_change(session, obj)
        await session.commit()
    finally:
        reset_current_company_id(token)

    if subscription_status:
        await _publish_subscription_state(company.id, subscription_status)

    log_event(route="/api/stripe-webhook", event_type=event_type, company_id=company.id, result="ok")
    return BillingWebhookResponse(
        received=True,
        event_type=event_type,
        company_id=str(company.id),
        updated=True,
    )
