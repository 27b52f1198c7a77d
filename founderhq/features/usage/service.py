"""
founderhq/features/usage/service.py

Usage counting service.

Usage is derived, never stored: each counter is the number of rows a user
owns in the resource's table at query time. check_counted_resource is the
one primitive that turns a count and a plan limit into an EntitlementDecision.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, Optional, Union
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from founderhq.core.database import (
    founder_blueprints,
    founder_generated_ideas,
    get_db_session,
    ideas,
    niche_radar,
    workspace_documents,
)
from founderhq.features.entitlements.service import EntitlementDecision
from founderhq.features.plans.catalog import get_plan_features, is_paid_plan, normalize_plan
from founderhq.models.plan import PlanId, UNBOUNDED


logger = logging.getLogger("founderhq")

Counter = Callable[[str], int]


class CountFailure(str, Enum):
    """What an unreadable count turns into."""
    ZERO = "zero"          # treat as unused (permissive, UX view)
    AT_LIMIT = "at_limit"  # treat as exhausted (server guards)


@contextmanager
def _session_scope(session: Optional[Session]) -> Iterator[Session]:
    if session is not None:
        yield session
        return
    with get_db_session() as owned:
        yield owned


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _count_rows(table, user_id: str, session: Optional[Session] = None, since: Optional[datetime] = None) -> int:
    query = select(func.count()).select_from(table).where(table.c.user_id == user_id)
    if since is not None:
        query = query.where(table.c.created_at >= since)
    with _session_scope(session) as s:
        return int(s.execute(query).scalar() or 0)


def count_total_generations(user_id: str, session: Optional[Session] = None) -> int:
    return _count_rows(founder_generated_ideas, user_id, session)


def count_today_generations(user_id: str, now: Optional[datetime] = None, session: Optional[Session] = None) -> int:
    """Generations since UTC midnight of `now` (display only)."""
    now = _as_utc(now or datetime.now(timezone.utc))
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return _count_rows(founder_generated_ideas, user_id, session, since=midnight)


def count_saved_ideas(user_id: str, session: Optional[Session] = None) -> int:
    return _count_rows(ideas, user_id, session)


def count_blueprints(user_id: str, session: Optional[Session] = None) -> int:
    return _count_rows(founder_blueprints, user_id, session)


def count_workspace_docs(user_id: str, session: Optional[Session] = None) -> int:
    return _count_rows(workspace_documents, user_id, session)


def count_radar_scans(user_id: str, session: Optional[Session] = None) -> int:
    """One scan writes a batch of signals; batches are distinct created_at minutes."""
    with _session_scope(session) as s:
        rows = s.execute(
            select(niche_radar.c.created_at).where(niche_radar.c.user_id == user_id)
        ).scalars().all()
    minutes = {
        _as_utc(created_at).replace(second=0, microsecond=0)
        for created_at in rows
        if created_at is not None
    }
    return len(minutes)


class CountedResource(Enum):
    """(limit field on PlanFeatures, default counter, denial reason)"""
    IDEA_GENERATIONS = (
        "max_idea_generations_total",
        count_total_generations,
        "You've used all your free idea generations. Upgrade to Pro for unlimited.",
    )
    SAVED_IDEAS = (
        "max_saved_ideas",
        count_saved_ideas,
        "Your idea library is full. Upgrade to Pro for unlimited saves.",
    )
    BLUEPRINTS = (
        "max_blueprints",
        count_blueprints,
        "You've created your free blueprint. Upgrade to Pro for unlimited blueprints.",
    )
    WORKSPACE_DOCS = (
        "max_workspace_docs",
        count_workspace_docs,
        "You've reached the free workspace document limit. Upgrade to Pro for unlimited documents.",
    )
    RADAR_SCANS = (
        "max_radar_scans",
        count_radar_scans,
        "You've used your free radar scan. Upgrade to Pro for unlimited market research.",
    )

    def __init__(self, limit_key: str, counter: Callable[..., int], reason: str):
        self.limit_key = limit_key
        self.counter = counter
        self.reason = reason


def check_counted_resource(
    user_id: str,
    plan: Optional[Union[str, PlanId]],
    resource: CountedResource,
    *,
    counter: Optional[Counter] = None,
    on_error: CountFailure = CountFailure.ZERO,
    session: Optional[Session] = None,
) -> EntitlementDecision:
    """
    Compare a user's current row count for `resource` against the plan limit.

    `plan` must already have the subscription status applied (a canceled pro
    row is passed in as free). A storage error while counting is logged and
    resolved by `on_error`.
    """
    limit = getattr(get_plan_features(plan), resource.limit_key)
    if limit.is_unbounded:
        return EntitlementDecision(allowed=True, remaining=UNBOUNDED, limit=limit)

    try:
        if counter is not None:
            count = counter(user_id)
        else:
            count = resource.counter(user_id, session=session)
    except Exception:
        logger.error(
            "[usage] count failed",
            exc_info=True,
            extra={
                "user_id": user_id,
                "resource": resource.name,
                "on_error": on_error.value,
            },
        )
        count = limit.value if on_error == CountFailure.AT_LIMIT else 0

    remaining = limit.remaining(count)
    allowed = remaining.value > 0
    return EntitlementDecision(
        allowed=allowed,
        remaining=remaining,
        limit=limit,
        reason=None if allowed else resource.reason,
    )


def can_generate_ideas(user_id: str, plan: Optional[Union[str, PlanId]], **kwargs) -> EntitlementDecision:
    plan = normalize_plan(plan)
    if is_paid_plan(plan):
        limit = get_plan_features(plan).max_idea_generations_total
        return EntitlementDecision(allowed=True, remaining=UNBOUNDED, limit=limit)
    return check_counted_resource(user_id, plan, CountedResource.IDEA_GENERATIONS, **kwargs)


def can_save_idea(user_id: str, plan: Optional[Union[str, PlanId]], **kwargs) -> EntitlementDecision:
    return check_counted_resource(user_id, plan, CountedResource.SAVED_IDEAS, **kwargs)


def can_create_blueprint(user_id: str, plan: Optional[Union[str, PlanId]], **kwargs) -> EntitlementDecision:
    return check_counted_resource(user_id, plan, CountedResource.BLUEPRINTS, **kwargs)


def can_create_workspace_doc(user_id: str, plan: Optional[Union[str, PlanId]], **kwargs) -> EntitlementDecision:
    return check_counted_resource(user_id, plan, CountedResource.WORKSPACE_DOCS, **kwargs)


def can_run_radar_scan(user_id: str, plan: Optional[Union[str, PlanId]], **kwargs) -> EntitlementDecision:
    return check_counted_resource(user_id, plan, CountedResource.RADAR_SCANS, **kwargs)
