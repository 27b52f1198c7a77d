"""Shared FastAPI dependencies: resolver, guard and AI client."""

from fastapi import Request

from founderhq.core.database import get_session_factory
from founderhq.features.ai.client import AIClient
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.features.subscriptions.service import SubscriptionResolver


def get_resolver(request: Request) -> SubscriptionResolver:
    return request.app.state.subscription_resolver


def get_plan_guard() -> PlanGuard:
    """A fresh guard per request; it never reuses state between requests."""
    return PlanGuard(get_session_factory())


def get_ai_client(request: Request) -> AIClient:
    return request.app.state.ai_client
