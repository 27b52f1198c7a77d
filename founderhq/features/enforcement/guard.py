"""
Server-side plan enforcement.

Every privileged operation re-derives the caller's plan straight from the
subscriptions table (no cache) and rejects the request with PlanLimitError
before any side effect. Any storage error during the re-check denies.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional, Union
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from founderhq.core.config import settings
from founderhq.core.database import user_subscriptions
from founderhq.core.errors import PlanLimitError
from founderhq.core.logging import log_event
from founderhq.features.entitlements.service import EntitlementDecision, can_use_feature
from founderhq.features.paywall.copy import PlanErrorCode, paywall_code_for_feature
from founderhq.features.plans.catalog import is_mode_allowed, is_paid_plan
from founderhq.features.subscriptions.service import resolve_entitled_plan
from founderhq.features.usage.service import (
    CountFailure,
    can_create_blueprint,
    can_create_workspace_doc,
    can_generate_ideas,
    can_run_radar_scan,
    can_save_idea,
)
from founderhq.models.plan import IdeaMode, PlanId


logger = logging.getLogger("founderhq")

DENIAL_MESSAGES = {
    PlanErrorCode.IDEA_LIMIT_REACHED: "Idea generation limit reached",
    PlanErrorCode.MODE_REQUIRES_PRO: "This idea mode requires Pro",
    PlanErrorCode.TRIAL_EXPIRED: "Your trial has expired. Subscribe to save more ideas.",
    PlanErrorCode.LIBRARY_FULL_TRIAL: "Library full during trial. Subscribe for unlimited storage.",
    PlanErrorCode.BLUEPRINT_LIMIT_TRIAL: "Blueprint limit reached during trial",
    PlanErrorCode.WORKSPACE_LIMIT: "Workspace document limit reached",
    PlanErrorCode.RADAR_LIMIT_REACHED: "You've used your trial radar scan. Upgrade to Pro for unlimited market research.",
}


@dataclass(frozen=True)
class ServerPlan:
    plan: PlanId
    is_pro: bool
    is_founder: bool
    subscribed_at: Optional[datetime] = None


FREE_SERVER_PLAN = ServerPlan(plan=PlanId.FREE, is_pro=False, is_founder=False)


def validate_server_side_plan(session: Session, user_id: str) -> ServerPlan:
    """Re-derive {plan, is_pro, is_founder} from storage; any failure resolves free."""
    try:
        row = session.execute(
            select(
                user_subscriptions.c.plan,
                user_subscriptions.c.status,
                user_subscriptions.c.created_at,
            ).where(user_subscriptions.c.user_id == user_id)
        ).first()
    except Exception:
        logger.error(
            "[enforcement] subscription re-check failed, denying as free",
            exc_info=True,
            extra={"user_id": user_id},
        )
        return FREE_SERVER_PLAN

    if row is None:
        return FREE_SERVER_PLAN

    plan = resolve_entitled_plan(row.plan, row.status)
    return ServerPlan(
        plan=plan,
        is_pro=is_paid_plan(plan),
        is_founder=plan == PlanId.FOUNDER,
        subscribed_at=row.created_at,
    )


class PlanGuard:
    """
    Request-scoped plan guard. Holds nothing between calls; every check
    opens its own session and reads the subscription row again.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        trial_days: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.session_factory = session_factory
        self.trial_days = trial_days if trial_days is not None else settings.TRIAL_DAYS
        self._clock = clock

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def _deny(
        self,
        user_id: str,
        server_plan: ServerPlan,
        code: PlanErrorCode,
        *,
        decision: Optional[EntitlementDecision] = None,
        mode: Optional[str] = None,
        message: Optional[str] = None,
    ) -> PlanLimitError:
        limit = None
        if decision is not None and not decision.limit.is_unbounded:
            limit = decision.limit.value
        log_event(
            "warning",
            "[enforcement] request denied",
            user_id=user_id,
            plan=server_plan.plan.value,
            error_code=code.value,
            extra={"plan_code": code.value, "limit": limit, "mode": mode},
        )
        return PlanLimitError(
            message or DENIAL_MESSAGES.get(code, "This feature requires Pro"),
            plan_code=code.value,
            plan=server_plan.plan.value,
            limit=limit,
            mode=mode,
        )

    def _trial_expired(self, server_plan: ServerPlan) -> bool:
        if server_plan.is_pro or server_plan.subscribed_at is None:
            return False
        started = server_plan.subscribed_at
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        return self._clock() > started + timedelta(days=self.trial_days)

    def require_idea_generation(self, user_id: str, mode: Union[str, IdeaMode]) -> ServerPlan:
        """Count is checked before mode: an exhausted free user always sees IDEA_LIMIT_REACHED."""
        mode_value = mode.value if isinstance(mode, IdeaMode) else str(mode)
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
            if not server_plan.is_pro:
                decision = can_generate_ideas(
                    user_id, server_plan.plan, on_error=CountFailure.AT_LIMIT, session=session
                )
                if not decision.allowed:
                    raise self._deny(user_id, server_plan, PlanErrorCode.IDEA_LIMIT_REACHED, decision=decision)
            if not is_mode_allowed(mode, server_plan.plan):
                raise self._deny(
                    user_id,
                    server_plan,
                    PlanErrorCode.MODE_REQUIRES_PRO,
                    mode=mode_value,
                    message=f'The "{mode_value}" mode requires Pro',
                )
        return server_plan

    def require_saved_idea_slot(self, user_id: str) -> ServerPlan:
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
            if server_plan.is_pro:
                return server_plan
            if self._trial_expired(server_plan):
                raise self._deny(user_id, server_plan, PlanErrorCode.TRIAL_EXPIRED)
            decision = can_save_idea(user_id, server_plan.plan, on_error=CountFailure.AT_LIMIT, session=session)
            if not decision.allowed:
                raise self._deny(user_id, server_plan, PlanErrorCode.LIBRARY_FULL_TRIAL, decision=decision)
        return server_plan

    def require_blueprint_slot(self, user_id: str) -> ServerPlan:
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
            decision = can_create_blueprint(user_id, server_plan.plan, on_error=CountFailure.AT_LIMIT, session=session)
            if not decision.allowed:
                raise self._deny(user_id, server_plan, PlanErrorCode.BLUEPRINT_LIMIT_TRIAL, decision=decision)
        return server_plan

    def require_workspace_slot(self, user_id: str) -> ServerPlan:
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
            decision = can_create_workspace_doc(
                user_id, server_plan.plan, on_error=CountFailure.AT_LIMIT, session=session
            )
            if not decision.allowed:
                raise self._deny(user_id, server_plan, PlanErrorCode.WORKSPACE_LIMIT, decision=decision)
        return server_plan

    def require_radar_scan(self, user_id: str) -> ServerPlan:
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
            decision = can_run_radar_scan(user_id, server_plan.plan, on_error=CountFailure.AT_LIMIT, session=session)
            if not decision.allowed:
                raise self._deny(user_id, server_plan, PlanErrorCode.RADAR_LIMIT_REACHED, decision=decision)
        return server_plan

    def require_feature(
        self,
        user_id: str,
        feature: str,
        code: Optional[Union[str, PlanErrorCode]] = None,
    ) -> ServerPlan:
        with self._session() as session:
            server_plan = validate_server_side_plan(session, user_id)
        if not can_use_feature(server_plan.plan, feature):
            raise self._deny(user_id, server_plan, PlanErrorCode(code or paywall_code_for_feature(feature)))
        return server_plan
