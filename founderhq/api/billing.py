"""
Billing API routes.

Minimal surface:
- POST /api/billing/checkout: Create Pro checkout session
- POST /api/billing/sync: Pull subscription state from Stripe
- POST /api/billing/webhook: Handle Stripe webhooks
- GET  /api/billing/status: Get user billing status
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from founderhq.api.deps import get_resolver
from founderhq.core.auth import get_current_user_id
from founderhq.core.errors import AppError, ValidationError
from founderhq.features.billing.provider import BillingProviderError, BillingWebhookError
from founderhq.features.billing.service import (
    billing_enabled,
    get_billing_status,
    process_webhook_event,
    start_checkout,
    sync_subscription,
)
from founderhq.features.subscriptions.service import SubscriptionResolver

logger = logging.getLogger("founderhq")

router = APIRouter(prefix="/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request to create checkout session."""
    interval: Literal["month", "year"] = "month"
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str


class BillingStatusResponse(BaseModel):
    enabled: bool
    plan: Optional[str] = None
    status: Optional[str] = None
    period_end: Optional[str] = None  # ISO8601
    cancel_at: Optional[str] = None  # ISO8601
    renewal_period: Optional[str] = None


def _require_billing() -> None:
    if not billing_enabled():
        raise AppError(
            "Stripe is not configured. Set STRIPE_SECRET_KEY environment variable.",
            code="billing_disabled",
            status_code=503,
        )


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(body: CheckoutRequest, user_id: str = Depends(get_current_user_id)):
    """
    Create Stripe checkout session for Pro.

    Errors:
        503: Billing disabled (STRIPE_SECRET_KEY not set)
        400: No price configured for the interval
        502: Stripe API error
    """
    _require_billing()
    try:
        url = start_checkout(
            user_id,
            interval=body.interval,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
        )
    except BillingProviderError as e:
        raise AppError(str(e), code="billing_provider_error", status_code=502)
    if not url:
        raise AppError("Billing provider unavailable", code="billing_disabled", status_code=503)
    return {"url": url}


@router.post("/sync")
def sync(
    user_id: str = Depends(get_current_user_id),
    resolver: SubscriptionResolver = Depends(get_resolver),
):
    _require_billing()
    try:
        return sync_subscription(user_id, on_plan_change=resolver.clear_plan_cache)
    except BillingProviderError as e:
        raise AppError(str(e), code="billing_provider_error", status_code=502)


@router.post("/webhook")
async def handle_webhook(request: Request, resolver: SubscriptionResolver = Depends(get_resolver)):
    """
    Handle Stripe webhook events.

    Verifies signature, processes event idempotently, updates the
    subscription row and clears the affected user's cached plan.

    Errors:
        400: Invalid signature or payload
        503: Billing disabled
    """
    _require_billing()

    # Raw body is required for signature verification
    body = await request.body()
    headers = dict(request.headers)

    try:
        result = process_webhook_event(headers, body, on_plan_change=resolver.clear_plan_cache)
    except BillingWebhookError as e:
        logger.warning(f"[billing] webhook rejected: {e}")
        raise ValidationError(str(e))
    return {"received": True, "event_id": result.event_id}


@router.get("/status", response_model=BillingStatusResponse)
def get_status(user_id: str = Depends(get_current_user_id)):
    status = get_billing_status(user_id)
    return {
        "enabled": status["enabled"],
        "plan": status["plan"],
        "status": status["status"],
        "period_end": status["period_end"].isoformat() if status["period_end"] else None,
        "cancel_at": status["cancel_at"].isoformat() if status["cancel_at"] else None,
        "renewal_period": status["renewal_period"],
    }
