"""
Stripe billing provider implementation.

Implements BillingProvider protocol using Stripe API.
Handles webhook signature verification and event parsing.
"""
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import stripe

from founderhq.core.config import settings
from founderhq.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    ProviderSubscription,
)

SUBSCRIPTION_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
}


def _ts(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def parse_subscription(data: Dict[str, Any]) -> ProviderSubscription:
    """Normalize a Stripe subscription object (dict-like)."""
    items = (data.get("items") or {}).get("data") or []
    first_item = items[0] if items else {}

    # Newer API versions carry the billing period on the item
    period_end = data.get("current_period_end") or first_item.get("current_period_end")

    interval = None
    price = first_item.get("price") or {}
    recurring = price.get("recurring") or {}
    if recurring.get("interval") in ("month", "year"):
        interval = recurring["interval"]
    elif (first_item.get("plan") or {}).get("interval") in ("month", "year"):
        interval = first_item["plan"]["interval"]

    return ProviderSubscription(
        subscription_id=data.get("id"),
        customer_id=data.get("customer"),
        status=data.get("status") or "unknown",
        current_period_end=_ts(period_end),
        cancel_at=_ts(data.get("cancel_at")),
        renewal_period=interval,
    )


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET)
        """
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def ensure_customer(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        """Create Stripe customer tagged with the internal user id."""
        try:
            customer_data: Dict[str, Any] = {
                "metadata": {"user_id": user_id}
            }
            if email:
                customer_data["email"] = email
            if name:
                customer_data["name"] = name

            customer = stripe.Customer.create(**customer_data)
            return customer.id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer creation failed: {e}")

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """Create Stripe checkout session."""
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                subscription_data={"metadata": metadata or {}},
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def find_entitled_subscription(self, customer_id: str) -> Optional[ProviderSubscription]:
        """First active or trialing subscription for the customer."""
        try:
            subscriptions = stripe.Subscription.list(customer=customer_id, status="all", limit=10)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe subscription lookup failed: {e}")

        for sub in subscriptions.data:
            if sub.get("status") in ("active", "trialing"):
                return parse_subscription(sub)
        return None

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(
                body, sig_header, self.webhook_secret
            )
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        return self._parse_event(event)

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        data = event.get("data", {}).get("object", {})
        subscription = None

        if event_type in SUBSCRIPTION_EVENTS:
            subscription = parse_subscription(data)

        elif event_type == "checkout.session.completed":
            subscription_id = data.get("subscription")
            if subscription_id:
                try:
                    subscription = parse_subscription(stripe.Subscription.retrieve(subscription_id))
                except stripe.StripeError as e:
                    raise BillingWebhookError(f"Subscription lookup failed: {e}")

        return BillingWebhookResult(
            event_id=event["id"],
            event_type=event_type,
            customer_id=data.get("customer"),
            subscription=subscription,
            metadata=dict(data.get("metadata") or {}),
        )
