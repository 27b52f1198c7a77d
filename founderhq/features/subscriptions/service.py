"""
founderhq/features/subscriptions/service.py

Subscription resolver.

Handles:
- Plan resolution (cache -> storage -> status gate -> fail closed to free)
- Client-readable subscription view (no provider ids)
- Implicit free/active row creation on first sight

Subscription state is written only by the billing webhook path; this module
reads it and creates the initial free row.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional
import logging

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from founderhq.core.database import user_subscriptions
from founderhq.features.plans.catalog import normalize_plan
from founderhq.features.subscriptions.cache import PlanCache
from founderhq.models.plan import PlanId
from founderhq.models.subscription import ENTITLED_STATUSES, SubscriptionView


logger = logging.getLogger("founderhq")


def resolve_entitled_plan(plan: Optional[str], status: Optional[str]) -> PlanId:
    """A plan only counts while status is active or trialing; otherwise free."""
    if status not in ENTITLED_STATUSES:
        return PlanId.FREE
    return normalize_plan(plan)


def _view_from_row(user_id: str, row) -> SubscriptionView:
    return SubscriptionView(
        user_id=user_id,
        plan=row.plan or "free",
        status=row.status or "active",
        current_period_end=row.current_period_end,
        cancel_at=row.cancel_at,
        renewal_period=row.renewal_period,
        created_at=row.created_at,
    )


class SubscriptionResolver:
    """Resolves plans through an injected PlanCache and session factory."""

    def __init__(self, session_factory: Callable[[], Session], cache: Optional[PlanCache] = None):
        self.session_factory = session_factory
        self.cache = cache if cache is not None else PlanCache()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_user_plan(self, user_id: str) -> PlanId:
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        try:
            with self._session() as session:
                row = session.execute(
                    select(user_subscriptions.c.plan, user_subscriptions.c.status)
                    .where(user_subscriptions.c.user_id == user_id)
                ).first()
        except Exception:
            logger.error(
                "[subscriptions] plan lookup failed, resolving free",
                exc_info=True,
                extra={"user_id": user_id},
            )
            return PlanId.FREE

        if row is None or row.status not in ENTITLED_STATUSES:
            return PlanId.FREE

        plan = resolve_entitled_plan(row.plan, row.status)
        self.cache.set(user_id, plan)
        return plan

    def clear_plan_cache(self, user_id: Optional[str] = None) -> None:
        self.cache.invalidate(user_id)
        logger.info("[subscriptions] plan cache cleared", extra={"user_id": user_id})

    def get_subscription(self, user_id: str) -> SubscriptionView:
        """
        Client-readable subscription view.

        Missing rows read as free/active. Storage errors propagate so callers
        can report them.
        """
        with self._session() as session:
            row = session.execute(
                select(
                    user_subscriptions.c.plan,
                    user_subscriptions.c.status,
                    user_subscriptions.c.current_period_end,
                    user_subscriptions.c.cancel_at,
                    user_subscriptions.c.renewal_period,
                    user_subscriptions.c.created_at,
                ).where(user_subscriptions.c.user_id == user_id)
            ).first()
        if row is None:
            return SubscriptionView(user_id=user_id)
        return _view_from_row(user_id, row)

    def ensure_subscription_row(self, user_id: str) -> SubscriptionView:
        """Create the free/active row the first time a user is seen."""
        try:
            with self._session() as session:
                exists = session.execute(
                    select(user_subscriptions.c.id).where(user_subscriptions.c.user_id == user_id)
                ).first()
                if exists is None:
                    session.execute(
                        insert(user_subscriptions).values(
                            user_id=user_id,
                            plan=PlanId.FREE.value,
                            status="active",
                            created_at=datetime.now(timezone.utc),
                            updated_at=datetime.now(timezone.utc),
                        )
                    )
                    logger.info("[subscriptions] created free subscription", extra={"user_id": user_id})
        except IntegrityError:
            # Concurrent first request already inserted the row
            logger.debug(f"[subscriptions] row already created for {user_id}")
        return self.get_subscription(user_id)
