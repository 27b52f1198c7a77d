"""
founderhq/features/paywall/copy.py

Plan error codes returned by server-side denials and the copy clients render
for each. Unrecognized codes get the generic upgrade copy, never an error.
"""

from enum import Enum
from typing import Dict, Optional, Union
from pydantic import BaseModel, ConfigDict


class PlanErrorCode(str, Enum):
    IDEA_LIMIT_REACHED = "IDEA_LIMIT_REACHED"
    LIBRARY_FULL_TRIAL = "LIBRARY_FULL_TRIAL"
    BLUEPRINT_LIMIT_TRIAL = "BLUEPRINT_LIMIT_TRIAL"
    MODE_REQUIRES_PRO = "MODE_REQUIRES_PRO"
    IDEA_DETAIL_PRO = "IDEA_DETAIL_PRO"
    WORKSPACE_LIMIT = "WORKSPACE_LIMIT"
    EXPORT_REQUIRES_PRO = "EXPORT_REQUIRES_PRO"
    MULTI_BLUEPRINT_TASKS = "MULTI_BLUEPRINT_TASKS"
    TRIAL_EXPIRED = "TRIAL_EXPIRED"
    RADAR_REQUIRES_PRO = "RADAR_REQUIRES_PRO"
    RADAR_LIMIT_REACHED = "RADAR_LIMIT_REACHED"
    FEATURE_REQUIRES_PRO = "FEATURE_REQUIRES_PRO"


class PaywallCopy(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline: str
    subhead: str
    cta: str
    microcopy: Optional[str] = None


PAYWALL_COPY: Dict[PlanErrorCode, PaywallCopy] = {
    PlanErrorCode.IDEA_LIMIT_REACHED: PaywallCopy(
        headline="You're onto something. Keep going.",
        subhead="You've used your free idea generations. Your best match might be one generation away, so unlock unlimited access to find it.",
        cta="Unlock Unlimited Ideas",
        microcopy="Most founders find their best idea on the 4th or 5th try.",
    ),
    PlanErrorCode.LIBRARY_FULL_TRIAL: PaywallCopy(
        headline="Your Library is full because your potential is bigger than the trial.",
        subhead="You've saved your trial limit of ideas. Unlock unlimited saves to collect, refine, and build out your vision.",
        cta="Unlock Unlimited Ideas",
        microcopy="Your best idea might be the next one you save.",
    ),
    PlanErrorCode.BLUEPRINT_LIMIT_TRIAL: PaywallCopy(
        headline="You've built your first Blueprint. Ready to build your future?",
        subhead="The trial includes one Blueprint. Pro lets you turn every idea into a real plan.",
        cta="Go Pro and Build Every Idea",
        microcopy="Blueprints are where dreams become plans.",
    ),
    PlanErrorCode.MODE_REQUIRES_PRO: PaywallCopy(
        headline="This mode is where the magic happens. It's Pro only.",
        subhead="Persona, Chaos and Memetic modes unlock high-potential business angles. Upgrade to explore them.",
        cta="Unlock All Idea Modes",
        microcopy="Pro gives you the full creative engine.",
    ),
    PlanErrorCode.IDEA_DETAIL_PRO: PaywallCopy(
        headline="Want the full breakdown? Go deeper with Pro.",
        subhead="Monetization paths, validation playbooks, audience insights and execution steps are part of the Pro idea deep dive.",
        cta="Unlock Full Idea Details",
        microcopy="The difference between dabbling and building is clarity.",
    ),
    PlanErrorCode.WORKSPACE_LIMIT: PaywallCopy(
        headline="The real building happens here, and it's Pro.",
        subhead="The Workspace is your AI cofounder's command center. Unlimited documents are unlocked in Pro.",
        cta="Unlock the Full Workspace",
        microcopy="Build with direction. Create with momentum.",
    ),
    PlanErrorCode.EXPORT_REQUIRES_PRO: PaywallCopy(
        headline="Document Export is a Pro feature.",
        subhead="Export your Blueprint, workspace documents and reports in a professional format.",
        cta="Unlock Exports",
        microcopy="Your work deserves a professional format.",
    ),
    PlanErrorCode.MULTI_BLUEPRINT_TASKS: PaywallCopy(
        headline="One Blueprint gets you started. Pro takes you further.",
        subhead="Track tasks and progress across every idea you're developing.",
        cta="Go Pro and Unlock Multi-Blueprint Tasks",
        microcopy="Your next breakthrough is waiting in the Blueprint you haven't created yet.",
    ),
    PlanErrorCode.TRIAL_EXPIRED: PaywallCopy(
        headline="Your trial is over. Your momentum doesn't have to be.",
        subhead="Pro gives you the tools to validate, plan, and build your best opportunity.",
        cta="Continue with Pro",
        microcopy="Everything you created is still here. Pick up where you left off.",
    ),
    PlanErrorCode.RADAR_REQUIRES_PRO: PaywallCopy(
        headline="Niche Radar is a Pro feature.",
        subhead="Get AI-powered market signals and emerging opportunities tailored to your chosen idea.",
        cta="Unlock Niche Radar",
        microcopy="Know what's coming before everyone else.",
    ),
    PlanErrorCode.RADAR_LIMIT_REACHED: PaywallCopy(
        headline="You've used your trial radar scan.",
        subhead="Upgrade to Pro for unlimited market research and stay ahead of emerging opportunities.",
        cta="Unlock Unlimited Radar",
        microcopy="Know what's coming before everyone else.",
    ),
    PlanErrorCode.FEATURE_REQUIRES_PRO: PaywallCopy(
        headline="This feature is part of FounderHQ Pro.",
        subhead="Pro gives you unlimited ideas, every idea mode, unlimited blueprints and a full AI workspace.",
        cta="Upgrade to Pro",
        microcopy="Cancel anytime. Your work is always saved.",
    ),
}

DEFAULT_PAYWALL_COPY = PaywallCopy(
    headline="This feature is part of FounderHQ Pro.",
    subhead="Pro gives you unlimited ideas, every idea mode, unlimited blueprints and a full AI workspace.",
    cta="Upgrade to Pro",
    microcopy="Cancel anytime. Your work is always saved.",
)


def get_paywall_copy(code: Optional[Union[str, PlanErrorCode]] = None) -> PaywallCopy:
    if not code:
        return DEFAULT_PAYWALL_COPY
    try:
        return PAYWALL_COPY[PlanErrorCode(code)]
    except ValueError:
        return DEFAULT_PAYWALL_COPY


# Gate aliases with their own paywall; every other locked gate uses FEATURE_REQUIRES_PRO
FEATURE_PAYWALL_CODES: Dict[str, PlanErrorCode] = {
    "radar": PlanErrorCode.RADAR_REQUIRES_PRO,
    "export": PlanErrorCode.EXPORT_REQUIRES_PRO,
    "workspace_unlimited": PlanErrorCode.WORKSPACE_LIMIT,
}


def paywall_code_for_feature(feature: str) -> PlanErrorCode:
    return FEATURE_PAYWALL_CODES.get(feature, PlanErrorCode.FEATURE_REQUIRES_PRO)
