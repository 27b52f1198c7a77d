"""
founderhq/features/plans/catalog.py

Static plan catalog: the single source of truth for what each plan includes.

Unknown or corrupted plan values always resolve to the free entry; an
unrecognized plan must never grant elevated access.
"""

from typing import Dict, List, Optional, Union

from founderhq.models.plan import IdeaMode, Limit, PlanFeatures, PlanId, UNBOUNDED


FREE_MODES = frozenset({IdeaMode.BREADTH, IdeaMode.FOCUS, IdeaMode.CREATOR})

PAID_PLANS = frozenset({PlanId.PRO, PlanId.FOUNDER})

PLAN_FEATURES: Dict[PlanId, PlanFeatures] = {
    PlanId.FREE: PlanFeatures(
        max_idea_generations_total=Limit.bounded(3),
        allowed_idea_modes=FREE_MODES,
        max_saved_ideas=Limit.bounded(5),
        max_blueprints=Limit.bounded(1),
        can_use_workspace="limited",
        max_workspace_docs=Limit.bounded(3),
        max_radar_scans=Limit.bounded(1),
        can_see_opportunity_score=False,
        can_compare_ideas=False,
        can_use_radar=False,  # gate only; the one trial scan is counted server-side
        can_export=False,
        can_see_full_idea_details=False,
        can_use_advanced_ai=False,
        can_use_fusion_lab=False,
        display_name="Free",
        description="Get started with the essentials",
    ),
    PlanId.PRO: PlanFeatures(
        max_idea_generations_total=UNBOUNDED,
        allowed_idea_modes="all",
        max_saved_ideas=UNBOUNDED,
        max_blueprints=UNBOUNDED,
        can_use_workspace="full",
        max_workspace_docs=UNBOUNDED,
        max_radar_scans=UNBOUNDED,
        can_see_opportunity_score=True,
        can_compare_ideas=True,
        can_use_radar=True,
        can_export=True,
        can_see_full_idea_details=True,
        can_use_advanced_ai=True,
        can_use_fusion_lab=True,
        display_name="FounderHQ Pro",
        description="Full access to all features",
        monthly_price=29,
        yearly_price=199,
    ),
    PlanId.FOUNDER: PlanFeatures(
        max_idea_generations_total=UNBOUNDED,
        allowed_idea_modes="all",
        max_saved_ideas=UNBOUNDED,
        max_blueprints=UNBOUNDED,
        can_use_workspace="full",
        max_workspace_docs=UNBOUNDED,
        max_radar_scans=UNBOUNDED,
        can_see_opportunity_score=True,
        can_compare_ideas=True,
        can_use_radar=True,
        can_export=True,
        can_see_full_idea_details=True,
        can_use_advanced_ai=True,
        can_use_fusion_lab=True,
        display_name="FounderHQ Founder",
        description="Everything in Pro + founder perks",
        monthly_price=49,
        yearly_price=349,
    ),
}

# Legacy feature names -> PlanFeatures field. Alias lookup wins over direct keys.
FEATURE_GATE_MAP: Dict[str, str] = {
    "idea_generation": "max_idea_generations_total",
    "idea_vetting": "can_use_advanced_ai",
    "opportunity_score": "can_see_opportunity_score",
    "compare_engine": "can_compare_ideas",
    "radar": "can_use_radar",
    "workspace_unlimited": "can_use_workspace",
    "fusion_lab": "can_use_fusion_lab",
    "export": "can_export",
}


def normalize_plan(raw: Optional[Union[str, PlanId]]) -> PlanId:
    """Map any raw value onto a PlanId; anything unrecognized is free."""
    if isinstance(raw, PlanId):
        return raw
    if not raw or not isinstance(raw, str):
        return PlanId.FREE
    try:
        return PlanId(raw.strip().lower())
    except ValueError:
        return PlanId.FREE


def get_plan_features(plan: Optional[Union[str, PlanId]]) -> PlanFeatures:
    return PLAN_FEATURES[normalize_plan(plan)]


def is_paid_plan(plan: Optional[Union[str, PlanId]]) -> bool:
    """Catalog-derived: pro or founder. Subscription status is applied by callers."""
    return normalize_plan(plan) in PAID_PLANS


def _coerce_mode(mode: Union[str, IdeaMode]) -> Optional[IdeaMode]:
    if isinstance(mode, IdeaMode):
        return mode
    try:
        return IdeaMode(mode)
    except ValueError:
        return None


def mode_requires_pro(mode: Union[str, IdeaMode]) -> bool:
    # Unknown modes are treated as Pro-only
    return _coerce_mode(mode) not in FREE_MODES


def get_allowed_modes(plan: Optional[Union[str, PlanId]]) -> List[IdeaMode]:
    allowed = get_plan_features(plan).allowed_idea_modes
    if allowed == "all":
        return list(IdeaMode)
    return [m for m in IdeaMode if m in allowed]


def is_mode_allowed(mode: Union[str, IdeaMode], plan: Optional[Union[str, PlanId]]) -> bool:
    coerced = _coerce_mode(mode)
    if coerced is None:
        return False
    allowed = get_plan_features(plan).allowed_idea_modes
    if allowed == "all":
        return True
    return coerced in allowed


def get_pro_only_features() -> List[str]:
    return [
        "can_see_opportunity_score",
        "can_compare_ideas",
        "can_use_radar",
        "can_export",
        "can_use_fusion_lab",
        "can_use_advanced_ai",
        "can_see_full_idea_details",
    ]
