"""
Entitlements API (UX only).

Endpoints:
- GET  /v1/entitlements/me: FeatureAccess, gates with their paywall codes, usage
- GET  /v1/entitlements/plans: catalog display info
- GET  /v1/entitlements/paywall/{code}: paywall copy (generic fallback)
- POST /v1/entitlements/refresh: drop the caller's cached plan

Nothing returned here authorizes anything; privileged routes re-check on
the server.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from founderhq.api.deps import get_resolver
from founderhq.core.auth import get_current_user_id
from founderhq.features.entitlements.service import build_feature_access, get_plan_display_info
from founderhq.features.paywall.copy import PAYWALL_COPY, get_paywall_copy, paywall_code_for_feature
from founderhq.features.plans.catalog import FEATURE_GATE_MAP, get_allowed_modes
from founderhq.features.subscriptions.service import SubscriptionResolver
from founderhq.features.usage.service import CountFailure, CountedResource, check_counted_resource
from founderhq.models.plan import PlanId

logger = logging.getLogger("founderhq")

router = APIRouter(prefix="/v1/entitlements", tags=["entitlements"])


@router.get("/me")
def get_my_entitlements(
    user_id: str = Depends(get_current_user_id),
    resolver: SubscriptionResolver = Depends(get_resolver),
) -> Dict[str, Any]:
    try:
        view = resolver.ensure_subscription_row(user_id)
        access = build_feature_access(view)
    except Exception:
        logger.error("[entitlements] subscription read failed", exc_info=True, extra={"user_id": user_id})
        access = build_feature_access(None, error="subscription_unavailable")

    plan = access.effective_plan
    features = {name: access.gate(name) for name in FEATURE_GATE_MAP}
    usage = {
        resource.name.lower(): check_counted_resource(
            user_id, plan, resource, on_error=CountFailure.ZERO
        ).to_dict()
        for resource in CountedResource
    }
    return {
        "access": access.to_dict(),
        "features": features,
        "locked": {name: paywall_code_for_feature(name).value for name, allowed in features.items() if not allowed},
        "allowed_modes": [m.value for m in get_allowed_modes(plan)],
        "usage": usage,
    }


@router.get("/plans")
def list_plans() -> Dict[str, Any]:
    return {
        "plans": [
            {"id": plan.value, **get_plan_display_info(plan).model_dump()}
            for plan in PlanId
        ]
    }


@router.get("/paywall/{code}")
def get_paywall(code: str) -> Dict[str, Any]:
    known = code in {c.value for c in PAYWALL_COPY}
    return {
        "code": code if known else None,
        "known": known,
        "copy": get_paywall_copy(code).model_dump(),
    }


@router.post("/refresh")
def refresh_plan(
    user_id: str = Depends(get_current_user_id),
    resolver: SubscriptionResolver = Depends(get_resolver),
) -> Dict[str, Any]:
    resolver.clear_plan_cache(user_id)
    return {"plan": resolver.get_user_plan(user_id).value}
