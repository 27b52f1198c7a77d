"""
founderhq/features/entitlements/service.py

Entitlement evaluator.

Handles:
- Feature checks against the plan catalog (alias names and direct keys)
- Paid-plan classification and display projections
- The client-facing FeatureAccess view (plan AND status combined)

Nothing here raises for business reasons: unknown plans and unknown
features degrade to the most restrictive answer.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict

from founderhq.features.plans.catalog import (
    FEATURE_GATE_MAP,
    get_plan_features,
    is_paid_plan,
    normalize_plan,
)
from founderhq.models.plan import Limit, PlanId
from founderhq.models.subscription import SubscriptionView


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    remaining: Limit
    limit: Limit
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "allowed": self.allowed,
            "remaining": self.remaining.to_json(),
            "limit": self.limit.to_json(),
        }
        if self.reason:
            payload["reason"] = self.reason
        return payload


class PlanDisplayInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    monthly_price: Optional[int] = None
    yearly_price: Optional[int] = None
    is_paid: bool


def _interpret(value: Any) -> bool:
    # bool must be checked before numbers; bool is an int subclass
    if isinstance(value, bool):
        return value
    if isinstance(value, Limit):
        return value.is_unbounded or value.value > 0
    if isinstance(value, (int, float)):
        return value > 0
    if isinstance(value, str):
        return value in ("full", "all")
    return False


def can_use_feature(plan: Optional[Union[str, PlanId]], feature: str) -> bool:
    """
    Check whether a plan grants a feature.

    `feature` is either a legacy alias from FEATURE_GATE_MAP or a direct
    PlanFeatures field name; the alias wins when both exist.
    """
    features = get_plan_features(plan)
    key = FEATURE_GATE_MAP.get(feature, feature)
    if key not in type(features).model_fields:
        return False
    return _interpret(getattr(features, key))


def has_paid_plan(plan: Optional[Union[str, PlanId]]) -> bool:
    return is_paid_plan(plan)


def get_plan_display_info(plan: Optional[Union[str, PlanId]]) -> PlanDisplayInfo:
    features = get_plan_features(plan)
    return PlanDisplayInfo(
        name=features.display_name,
        description=features.description,
        monthly_price=features.monthly_price,
        yearly_price=features.yearly_price,
        is_paid=is_paid_plan(plan),
    )


@dataclass(frozen=True)
class FeatureAccess:
    """
    UX-only view of a caller's entitlements. Carries no authority; every
    privileged operation is re-checked by the server-side guards.
    """
    plan: PlanId
    status: str
    has_pro: bool
    has_founder: bool
    is_trialing: bool
    days_until_trial_end: Optional[int]
    current_period_end: Optional[datetime] = None
    cancel_at: Optional[datetime] = None
    renewal_period: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None
    effective_plan: PlanId = field(default=PlanId.FREE)

    def gate(self, feature: str) -> bool:
        return can_use_feature(self.effective_plan, feature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.value,
            "status": self.status,
            "has_pro": self.has_pro,
            "has_founder": self.has_founder,
            "is_trialing": self.is_trialing,
            "days_until_trial_end": self.days_until_trial_end,
            "current_period_end": self.current_period_end.isoformat() if self.current_period_end else None,
            "cancel_at": self.cancel_at.isoformat() if self.cancel_at else None,
            "renewal_period": self.renewal_period,
            "loading": self.loading,
            "error": self.error,
        }


def _days_until(end: Optional[datetime], now: datetime) -> Optional[int]:
    if end is None:
        return None
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    days = math.ceil((end - now).total_seconds() / 86400)
    return max(0, days)


def build_feature_access(
    view: Optional[SubscriptionView],
    loading: bool = False,
    error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FeatureAccess:
    """
    Derive FeatureAccess from a subscription view.

    has_pro / has_founder require BOTH a paid plan and an active or trialing
    status. A missing view (anonymous caller, failed read) yields free defaults.
    """
    if view is None:
        return FeatureAccess(
            plan=PlanId.FREE,
            status="active",
            has_pro=False,
            has_founder=False,
            is_trialing=False,
            days_until_trial_end=None,
            loading=loading,
            error=error,
        )

    now = now or datetime.now(timezone.utc)
    plan = normalize_plan(view.plan)
    entitled = view.is_entitled
    effective = plan if entitled else PlanId.FREE
    is_trialing = view.status == "trialing"

    return FeatureAccess(
        plan=plan,
        status=view.status,
        has_pro=entitled and is_paid_plan(plan),
        has_founder=entitled and plan == PlanId.FOUNDER,
        is_trialing=is_trialing,
        days_until_trial_end=_days_until(view.current_period_end, now) if is_trialing else None,
        current_period_end=view.current_period_end,
        cancel_at=view.cancel_at,
        renewal_period=view.renewal_period,
        loading=loading,
        error=error,
        effective_plan=effective,
    )
