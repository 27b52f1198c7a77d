"""
founderhq/models/plan.py

Plan, idea-mode and limit types shared by the catalog, the evaluator and the
server-side guards.
"""

from enum import Enum
from typing import FrozenSet, Optional, Union
from pydantic import BaseModel, ConfigDict


class PlanId(str, Enum):
    FREE = "free"
    PRO = "pro"
    FOUNDER = "founder"


class IdeaMode(str, Enum):
    BREADTH = "breadth"
    FOCUS = "focus"
    CREATOR = "creator"
    AUTOMATION = "automation"
    PERSONA = "persona"
    BOUNDLESS = "boundless"
    CHAOS = "chaos"
    MONEY_PRINTER = "money_printer"
    MEMETIC = "memetic"
    LOCKER_ROOM = "locker_room"


class Limit(BaseModel):
    """
    A resource limit: either bounded by a non-negative count or unbounded.

    Use Limit.bounded(n) / Limit.unbounded() rather than the constructor.
    Arithmetic on an unbounded limit never produces a number; remaining()
    stays unbounded.
    """
    model_config = ConfigDict(frozen=True)

    value: Optional[int] = None

    @classmethod
    def bounded(cls, n: int) -> "Limit":
        if n < 0:
            raise ValueError("limit must be >= 0")
        return cls(value=n)

    @classmethod
    def unbounded(cls) -> "Limit":
        return cls(value=None)

    @property
    def is_unbounded(self) -> bool:
        return self.value is None

    def remaining(self, count: int) -> "Limit":
        if self.value is None:
            return self
        return Limit.bounded(max(0, self.value - count))

    def allows(self, count: int) -> bool:
        """True while `count` existing rows still leave room for one more."""
        return self.value is None or count < self.value

    def to_json(self) -> Union[int, str]:
        return "unbounded" if self.value is None else self.value


UNBOUNDED = Limit.unbounded()


class PlanFeatures(BaseModel):
    """Static entitlements for one plan."""
    model_config = ConfigDict(frozen=True)

    max_idea_generations_total: Limit
    allowed_idea_modes: Union[str, FrozenSet[IdeaMode]]  # "all" or explicit set
    max_saved_ideas: Limit
    max_blueprints: Limit
    can_use_workspace: str  # "limited" | "full"
    max_workspace_docs: Limit
    max_radar_scans: Limit

    can_see_opportunity_score: bool
    can_compare_ideas: bool
    can_use_radar: bool
    can_export: bool
    can_see_full_idea_details: bool
    can_use_advanced_ai: bool
    can_use_fusion_lab: bool

    display_name: str
    description: str
    monthly_price: Optional[int] = None
    yearly_price: Optional[int] = None
