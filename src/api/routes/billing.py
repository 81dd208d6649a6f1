from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.billing import (
    StripeBillingClient,
    SubscriptionState,
    UnknownPlanError,
    get_company_subscription_state,
    missing_price_ids,
    normalize_plan,
    price_id_for_plan,
    require_active_subscription,
    subscription_is_active,
)
from src.core.config import settings
from src.core.db import get_db_session
from src.core.guards import get_request_id, require_json_body, validate_request_origin
from src.core.logging import log_event
from src.core.repositories.members import MemberRepository
from src.core.tenancy import get_request_company, request_domain
from src.schemas.billing import (
    CheckoutSessionRequest,
    PortalSessionRequest,
    RedirectResponse,
    SubscriptionStatusResponse,
)

router = APIRouter(tags=["billing"])


@router.post(
    "/create-checkout-session",
    response_model=RedirectResponse,
    dependencies=[Depends(validate_request_origin), Depends(require_json_body)],
)
async def create_checkout_session(
    payload: CheckoutSessionRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    request_id = get_request_id(request)

    domain = request_domain(request)
    if not domain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not detect domain",
        )

    company = await get_request_company(request, session)

    if not payload.plan_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing planId",
        )

    missing = missing_price_ids()
    if missing:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Missing {', '.join(missing)} env vars",
        )

    try:
        price_id = price_id_for_plan(payload.plan_id)
    except UnknownPlanError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    plan = normalize_plan(payload.plan_id)
    email = (payload.customer_email or payload.email or "").strip().lower()

    if email:
        member = await MemberRepository(session).get_by_email(email)
        if member is not None and subscription_is_active(member.status):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Subscription already active for this email",
            )

    company_id = str(company.id)
    client = StripeBillingClient()
    checkout = await asyncio.to_thread(
        client.create_checkout_session,
        price_id=price_id,
        success_url=payload.success_url
        or f"https://{domain}/gracias.html?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=payload.cancel_url or f"https://{domain}/index.html#planes",
        customer_email=email or None,
        metadata={
            "company_id": company_id,
            "plan": plan,
            "email": email,
            "domain": domain,
        },
        subscription_metadata={
            "company_id": company_id,
            "plan": plan,
            "email": email,
        },
    )

    log_event(route="/api/create-checkout-session", company_id=company.id, plan=plan, result="ok")
    return RedirectResponse(url=checkout["url"], request_id=request_id)


@router.post(
    "/create-portal-session",
    response_model=RedirectResponse,
    dependencies=[Depends(validate_request_origin), Depends(require_json_body)],
)
async def create_portal_session(
    payload: PortalSessionRequest,
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    email = payload.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A valid email is required",
        )

    company = await get_request_company(request, session)

    member = await MemberRepository(session).get_by_email(email)
    if member is None or not member.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No subscription found for that email",
        )

    client = StripeBillingClient()
    portal = await asyncio.to_thread(
        client.create_portal_session,
        customer_id=member.stripe_customer_id,
        return_url=f"{settings.app_base_url.rstrip('/')}/index.html#planes",
    )

    log_event(route="/api/create-portal-session", company_id=company.id, result="ok")
    return RedirectResponse(url=portal["url"], request_id=get_request_id(request))


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    request: Request,
    state: SubscriptionState = Depends(get_company_subscription_state),
) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(
        status=state.status,
        active=state.active,
        plan=state.plan,
        price_id=state.price_id,
        current_period_end=state.current_period_end,
        request_id=get_request_id(request),
    )


@router.post("/billing/guards/active")
async def active_subscription_guard(
    _: SubscriptionState = Depends(require_active_subscription),
) -> dict[str, bool]:
    return {"allowed": True}

