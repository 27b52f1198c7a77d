"""
Tests for checkout, sync and billing status, including the billing-disabled
path (no STRIPE_SECRET_KEY).
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from conftest import auth_headers, insert_subscription
from founderhq.core.database import get_db_session, user_subscriptions
from founderhq.core.errors import ValidationError
from founderhq.features.billing.provider import BillingProviderError, ProviderSubscription
from founderhq.features.billing.service import (
    billing_enabled,
    ensure_customer_for_user,
    get_billing_status,
    get_provider,
    get_stripe_price_for_interval,
    start_checkout,
    sync_subscription,
)
from founderhq.features.billing.stripe_provider import parse_subscription


def _provider():
    provider = MagicMock()
    provider.ensure_customer.return_value = "cus_new"
    provider.create_checkout_session.return_value = "https://checkout.example/session"
    return provider


def _customer_id(user_id):
    with get_db_session() as session:
        return session.execute(
            select(user_subscriptions.c.stripe_customer_id).where(user_subscriptions.c.user_id == user_id)
        ).scalar()


def test_billing_disabled_without_key():
    assert billing_enabled() is False
    assert get_provider() is None
    assert start_checkout("alice") is None
    assert sync_subscription("alice") == {"synced": False, "reason": "billing_disabled"}
    assert get_billing_status("alice")["enabled"] is False


@pytest.mark.parametrize("path", ["/api/billing/checkout", "/api/billing/sync", "/api/billing/webhook"])
def test_billing_routes_return_503_when_disabled(client, path):
    response = client.post(path, json={}, headers=auth_headers("alice"))
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "billing_disabled"


def test_status_route_when_disabled(client):
    response = client.get("/api/billing/status", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.json()["enabled"] is False


def test_price_for_interval():
    assert get_stripe_price_for_interval("month") == "price_month"
    assert get_stripe_price_for_interval("year") == "price_year"
    assert get_stripe_price_for_interval("week") is None


def test_ensure_customer_creates_free_row():
    provider = _provider()
    assert ensure_customer_for_user("alice", provider, "a@example.com") == "cus_new"
    assert _customer_id("alice") == "cus_new"
    provider.ensure_customer.assert_called_once_with("alice", "a@example.com")


def test_ensure_customer_links_existing_row_once():
    insert_subscription("alice")
    provider = _provider()
    ensure_customer_for_user("alice", provider)
    ensure_customer_for_user("alice", provider)
    assert _customer_id("alice") == "cus_new"
    assert provider.ensure_customer.call_count == 1


def test_start_checkout_uses_interval_price(test_settings):
    provider = _provider()
    url = start_checkout("alice", interval="year", provider=provider)
    assert url == "https://checkout.example/session"
    kwargs = provider.create_checkout_session.call_args.kwargs
    assert kwargs["price_id"] == "price_year"
    assert kwargs["customer_id"] == "cus_new"
    assert kwargs["metadata"]["user_id"] == "alice"
    assert kwargs["success_url"].endswith("/billing/success")


def test_start_checkout_without_price(test_settings):
    test_settings.STRIPE_PRICE_PRO_MONTHLY = None
    with pytest.raises(ValidationError):
        start_checkout("alice", interval="month", provider=_provider())


def test_sync_without_customer():
    insert_subscription("alice")
    assert sync_subscription("alice", provider=_provider()) == {"synced": False, "reason": "no_customer"}


def test_sync_without_active_subscription():
    insert_subscription("alice", customer_id="cus_1")
    provider = _provider()
    provider.find_entitled_subscription.return_value = None
    assert sync_subscription("alice", provider=provider)["reason"] == "no_active_subscription"


def test_sync_stores_subscription_and_clears_cache(resolver):
    insert_subscription("alice", customer_id="cus_1")
    resolver.get_user_plan("alice")
    provider = _provider()
    provider.find_entitled_subscription.return_value = ProviderSubscription(
        subscription_id="sub_9",
        customer_id="cus_1",
        status="trialing",
        current_period_end=datetime(2026, 11, 1, tzinfo=timezone.utc),
        renewal_period="year",
    )

    result = sync_subscription("alice", provider=provider, on_plan_change=resolver.clear_plan_cache)

    assert result["synced"] is True
    assert result["status"] == "trialing"
    assert result["renewal_period"] == "year"
    assert resolver.get_user_plan("alice").value == "pro"


def test_status_reads_row(test_settings):
    test_settings.STRIPE_SECRET_KEY = "sk_test"
    insert_subscription("alice", "pro", "active", current_period_end=datetime(2026, 11, 1, tzinfo=timezone.utc))
    status = get_billing_status("alice")
    assert status["enabled"] is True
    assert status["plan"] == "pro"
    assert status["period_end"] is not None


def test_checkout_route_maps_provider_error(client, test_settings, monkeypatch):
    test_settings.STRIPE_SECRET_KEY = "sk_test"
    provider = _provider()
    provider.ensure_customer.side_effect = BillingProviderError("Stripe customer creation failed")
    monkeypatch.setattr("founderhq.features.billing.service.get_provider", lambda: provider)

    response = client.post("/api/billing/checkout", json={"interval": "month"}, headers=auth_headers("alice"))
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "billing_provider_error"


def test_checkout_route_returns_url(client, test_settings, monkeypatch):
    test_settings.STRIPE_SECRET_KEY = "sk_test"
    monkeypatch.setattr("founderhq.features.billing.service.get_provider", lambda: _provider())

    response = client.post("/api/billing/checkout", json={"interval": "month"}, headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.example/session"}


def test_parse_subscription_reads_item_period_and_interval():
    sub = parse_subscription({
        "id": "sub_1",
        "customer": "cus_1",
        "status": "active",
        "cancel_at": None,
        "items": {"data": [{
            "current_period_end": 1767225600,
            "price": {"recurring": {"interval": "year"}},
        }]},
    })
    assert sub.subscription_id == "sub_1"
    assert sub.renewal_period == "year"
    assert sub.current_period_end == datetime.fromtimestamp(1767225600, tz=timezone.utc)
    assert sub.cancel_at is None


def test_parse_subscription_falls_back_to_plan_interval():
    sub = parse_subscription({
        "id": "sub_2",
        "customer": "cus_2",
        "status": "trialing",
        "current_period_end": 1767225600,
        "items": {"data": [{"plan": {"interval": "month"}}]},
    })
    assert sub.renewal_period == "month"
    assert sub.status == "trialing"
