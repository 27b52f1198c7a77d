"""
Billing service orchestrator.

Coordinates:
- Customer management
- Checkout and subscription sync
- Webhook processing (the only writer of paid subscription state)

All Stripe-specific code is in stripe_provider.py. Every write that changes a
user's subscription row clears that user's plan cache.
"""
import hashlib
import logging
from typing import Optional, Dict, Any, Callable
from datetime import datetime, timezone
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from founderhq.core.config import settings
from founderhq.core.database import (
    get_db_session,
    billing_events,
    user_subscriptions,
)
from founderhq.core.errors import ValidationError
from founderhq.core.logging import log_event
from founderhq.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    ProviderSubscription,
)
from founderhq.features.billing.stripe_provider import StripeProvider
from founderhq.models.plan import PlanId


logger = logging.getLogger("founderhq")

# Stripe statuses that drop a subscription back to the free plan
DOWNGRADE_STATUSES = {"canceled", "unpaid"}

PlanChangeHook = Callable[[str], None]


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    try:
        return StripeProvider()
    except BillingProviderError:
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _user_for_customer(session, customer_id: str) -> Optional[str]:
    row = session.execute(
        select(user_subscriptions.c.user_id).where(user_subscriptions.c.stripe_customer_id == customer_id)
    ).first()
    return row.user_id if row else None


def _subscription_values(sub: ProviderSubscription, plan: str) -> Dict[str, Any]:
    return {
        "stripe_subscription_id": sub.subscription_id,
        "plan": plan,
        "status": sub.status,
        "current_period_end": sub.current_period_end,
        "cancel_at": sub.cancel_at,
        "updated_at": _now(),
    }


def transition_for_event(result: BillingWebhookResult) -> Optional[Dict[str, Any]]:
    """
    Column values a webhook event writes to the subscription row, or None
    when the event does not change subscription state.
    """
    sub = result.subscription
    event_type = result.event_type

    if event_type == "checkout.session.completed":
        if sub is None:
            return None
        return _subscription_values(sub, PlanId.PRO.value)

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        if sub is None:
            return None
        plan = PlanId.FREE.value if sub.status in DOWNGRADE_STATUSES else PlanId.PRO.value
        values = _subscription_values(sub, plan)
        values["renewal_period"] = sub.renewal_period
        return values

    if event_type == "customer.subscription.deleted":
        return {
            "plan": PlanId.FREE.value,
            "status": "canceled",
            "stripe_subscription_id": None,
            "cancel_at": None,
            "updated_at": _now(),
        }

    if event_type == "invoice.payment_failed":
        return {"status": "past_due", "updated_at": _now()}

    return None


def apply_webhook_result(result: BillingWebhookResult, on_plan_change: Optional[PlanChangeHook] = None) -> Optional[str]:
    """
    Apply a parsed webhook event to the subscription row keyed by customer id.

    Returns:
        The affected user_id, or None when nothing was written
    """
    values = transition_for_event(result)
    if values is None:
        logger.info(
            "[billing] event ignored",
            extra={"event_type": result.event_type, "event_id": result.event_id},
        )
        return None

    if not result.customer_id:
        logger.warning("[billing] event without customer", extra={"event_type": result.event_type})
        return None

    with get_db_session() as session:
        user_id = _user_for_customer(session, result.customer_id)
        if user_id is None:
            logger.warning(
                "[billing] no subscription row for customer",
                extra={"customer_id": result.customer_id, "event_type": result.event_type},
            )
            return None
        session.execute(
            update(user_subscriptions)
            .where(user_subscriptions.c.stripe_customer_id == result.customer_id)
            .values(**values)
        )

    log_event(
        "info",
        "[billing] subscription updated",
        user_id=user_id,
        plan=values.get("plan"),
        event_type=result.event_type,
        extra={"status": values.get("status")},
    )
    if on_plan_change:
        on_plan_change(user_id)
    return user_id


def process_webhook_event(
    headers: Dict[str, str],
    body: bytes,
    provider: Optional[BillingProvider] = None,
    on_plan_change: Optional[PlanChangeHook] = None,
) -> BillingWebhookResult:
    """
    Process billing webhook event (idempotent).

    1. Verify signature
    2. Check idempotency (skip if already processed; retry if recorded but unapplied)
    3. Apply state changes
    4. Mark as processed

    Raises:
        BillingWebhookError: If signature invalid or processing fails
    """
    provider = provider or get_provider()
    if not provider:
        raise BillingWebhookError("Billing not enabled")

    result = provider.handle_webhook(headers, body)
    payload_hash = hashlib.sha256(body).hexdigest()

    with get_db_session() as session:
        existing = session.execute(
            select(billing_events.c.id, billing_events.c.processed).where(
                billing_events.c.stripe_event_id == result.event_id
            )
        ).fetchone()

    if existing and existing.processed:
        logger.info("[billing] duplicate event skipped", extra={"event_id": result.event_id})
        return result

    if existing:
        # Recorded by an earlier delivery whose apply failed; apply it again
        log_event(
            "info",
            "[billing] retrying unprocessed event",
            event_type=result.event_type,
            extra={"event_id": result.event_id},
        )
    else:
        try:
            with get_db_session() as session:
                session.execute(
                    insert(billing_events).values(
                        stripe_event_id=result.event_id,
                        event_type=result.event_type,
                        payload_hash=payload_hash,
                        processed=False,
                    )
                )
        except IntegrityError:
            # Race condition: another worker already recorded this event
            return result

    try:
        apply_webhook_result(result, on_plan_change=on_plan_change)

        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(processed=True, processed_at=_now())
            )
    except Exception as e:
        log_event(
            "error",
            "[billing] webhook apply failed",
            event_type=result.event_type,
            error_code="webhook_apply_failed",
            extra={"event_id": result.event_id, "error": e},
        )
        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(error=str(e))
            )
        raise

    return result


def get_stripe_price_for_interval(interval: str) -> Optional[str]:
    """Map a renewal interval to the configured Pro price."""
    price_map = {
        "month": settings.STRIPE_PRICE_PRO_MONTHLY,
        "year": settings.STRIPE_PRICE_PRO_YEARLY,
    }
    return price_map.get(interval)


def ensure_customer_for_user(
    user_id: str,
    provider: BillingProvider,
    email: Optional[str] = None,
) -> str:
    """
    Return the user's provider customer id, creating and linking one if needed.

    Creates the free/active subscription row when the user has none, so the
    webhook path can always find the user by customer id.
    """
    with get_db_session() as session:
        row = session.execute(
            select(user_subscriptions.c.stripe_customer_id).where(user_subscriptions.c.user_id == user_id)
        ).first()
        if row and row.stripe_customer_id:
            return row.stripe_customer_id

    customer_id = provider.ensure_customer(user_id, email)

    with get_db_session() as session:
        if row is None:
            session.execute(
                insert(user_subscriptions).values(
                    user_id=user_id,
                    plan=PlanId.FREE.value,
                    status="active",
                    stripe_customer_id=customer_id,
                    created_at=_now(),
                    updated_at=_now(),
                )
            )
        else:
            session.execute(
                update(user_subscriptions)
                .where(user_subscriptions.c.user_id == user_id)
                .values(stripe_customer_id=customer_id, updated_at=_now())
            )

    logger.info("[billing] customer linked", extra={"user_id": user_id})
    return customer_id


def start_checkout(
    user_id: str,
    interval: str = "month",
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    email: Optional[str] = None,
    provider: Optional[BillingProvider] = None,
) -> Optional[str]:
    """
    Start a Pro checkout session.

    Returns:
        Checkout URL, or None if billing disabled

    Raises:
        ValidationError: Unknown interval or no price configured for it
        BillingProviderError: If checkout creation fails
    """
    provider = provider or get_provider()
    if not provider:
        return None

    price_id = get_stripe_price_for_interval(interval)
    if not price_id:
        raise ValidationError(f"No Stripe price configured for interval: {interval}")

    customer_id = ensure_customer_for_user(user_id, provider, email)
    base = settings.BASE_URL.rstrip("/")

    return provider.create_checkout_session(
        customer_id=customer_id,
        price_id=price_id,
        success_url=success_url or f"{base}/billing/success",
        cancel_url=cancel_url or f"{base}/billing/canceled",
        metadata={"user_id": user_id, "plan": PlanId.PRO.value, "interval": interval},
    )


def sync_subscription(
    user_id: str,
    provider: Optional[BillingProvider] = None,
    on_plan_change: Optional[PlanChangeHook] = None,
) -> Dict[str, Any]:
    """
    Pull the customer's entitled subscription from the provider and store it.

    Returns:
        {"synced": bool, "reason"?: str, "plan"?: str, "status"?: str, ...}
    """
    provider = provider or get_provider()
    if not provider:
        return {"synced": False, "reason": "billing_disabled"}

    with get_db_session() as session:
        row = session.execute(
            select(user_subscriptions.c.stripe_customer_id).where(user_subscriptions.c.user_id == user_id)
        ).first()

    if row is None or not row.stripe_customer_id:
        return {"synced": False, "reason": "no_customer"}

    sub = provider.find_entitled_subscription(row.stripe_customer_id)
    if sub is None:
        return {"synced": False, "reason": "no_active_subscription"}

    values = _subscription_values(sub, PlanId.PRO.value)
    values["renewal_period"] = sub.renewal_period
    with get_db_session() as session:
        session.execute(
            update(user_subscriptions)
            .where(user_subscriptions.c.user_id == user_id)
            .values(**values)
        )

    logger.info(
        "[billing] subscription synced",
        extra={"user_id": user_id, "status": sub.status, "renewal_period": sub.renewal_period},
    )
    if on_plan_change:
        on_plan_change(user_id)

    return {
        "synced": True,
        "plan": PlanId.PRO.value,
        "status": sub.status,
        "current_period_end": sub.current_period_end.isoformat() if sub.current_period_end else None,
        "renewal_period": sub.renewal_period,
    }


def get_billing_status(user_id: str) -> Dict[str, Any]:
    """
    Get user's billing status.

    Returns:
        {"enabled", "plan", "status", "period_end", "cancel_at", "renewal_period"}
    """
    empty = {
        "enabled": billing_enabled(),
        "plan": None,
        "status": None,
        "period_end": None,
        "cancel_at": None,
        "renewal_period": None,
    }
    if not billing_enabled():
        return empty

    with get_db_session() as session:
        row = session.execute(
            select(
                user_subscriptions.c.plan,
                user_subscriptions.c.status,
                user_subscriptions.c.current_period_end,
                user_subscriptions.c.cancel_at,
                user_subscriptions.c.renewal_period,
            ).where(user_subscriptions.c.user_id == user_id)
        ).first()

    if row is None:
        return empty

    return {
        "enabled": True,
        "plan": row.plan,
        "status": row.status,
        "period_end": row.current_period_end,
        "cancel_at": row.cancel_at,
        "renewal_period": row.renewal_period,
    }
