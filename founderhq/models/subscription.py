"""
founderhq/models/subscription.py

Client-readable subscription view. Provider linkage (customer id,
subscription id) never leaves the server.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

ENTITLED_STATUSES = frozenset({"active", "trialing"})


class SubscriptionView(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    plan: str = "free"
    status: str = "active"
    current_period_end: Optional[datetime] = None
    cancel_at: Optional[datetime] = None
    renewal_period: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_entitled(self) -> bool:
        """Plan value only counts when the status is active or trialing."""
        return self.status in ENTITLED_STATUSES
