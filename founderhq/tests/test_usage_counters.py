"""
Tests for usage counting and the counted-resource decisions.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import insert

from conftest import insert_rows
from founderhq.core.database import (
    founder_blueprints,
    founder_generated_ideas,
    get_db_session,
    ideas,
    niche_radar,
    workspace_documents,
)
from founderhq.features.usage.service import (
    CountFailure,
    CountedResource,
    can_create_blueprint,
    can_create_workspace_doc,
    can_generate_ideas,
    can_run_radar_scan,
    can_save_idea,
    check_counted_resource,
    count_blueprints,
    count_radar_scans,
    count_saved_ideas,
    count_today_generations,
    count_total_generations,
    count_workspace_docs,
)
from founderhq.models.plan import Limit


def _generations(user_id, n):
    insert_rows(founder_generated_ideas, user_id, n, mode="breadth", title="gen {i}")


def _radar_row(user_id, created_at, title="signal"):
    with get_db_session() as session:
        session.execute(
            insert(niche_radar).values(
                user_id=user_id,
                signal_type="trend",
                title=title,
                description="d",
                recommended_action="act",
                priority_score=50,
                created_at=created_at,
            )
        )


def test_counts_are_per_user():
    _generations("alice", 2)
    _generations("bob", 1)
    insert_rows(ideas, "alice", 4, title="idea {i}")
    insert_rows(founder_blueprints, "alice", 1, title="bp {i}")
    insert_rows(workspace_documents, "bob", 2, title="doc {i}")

    assert count_total_generations("alice") == 2
    assert count_total_generations("bob") == 1
    assert count_saved_ideas("alice") == 4
    assert count_blueprints("alice") == 1
    assert count_blueprints("bob") == 0
    assert count_workspace_docs("bob") == 2
    assert count_total_generations("nobody") == 0


def test_count_today_generations_starts_at_utc_midnight():
    now = datetime(2026, 5, 10, 15, 30, tzinfo=timezone.utc)
    with get_db_session() as session:
        for created_at in (
            now - timedelta(days=1),                  # yesterday
            now.replace(hour=0, minute=0, second=0),  # exactly midnight
            now - timedelta(hours=2),
        ):
            session.execute(
                insert(founder_generated_ideas).values(
                    user_id="alice", mode="breadth", title="t", created_at=created_at
                )
            )

    assert count_today_generations("alice", now=now) == 2
    assert count_total_generations("alice") == 3


def test_radar_scans_count_distinct_minutes():
    base = datetime(2026, 5, 10, 9, 0, 5, tzinfo=timezone.utc)
    # First scan: three signals written in the same minute
    for i in range(3):
        _radar_row("alice", base + timedelta(seconds=i), title=f"a{i}")
    # Second scan, a few minutes later
    _radar_row("alice", base + timedelta(minutes=4), title="b0")
    _radar_row("alice", base + timedelta(minutes=4, seconds=1), title="b1")

    assert count_radar_scans("alice") == 2
    assert count_radar_scans("bob") == 0


def test_can_generate_ideas_boundary():
    """At limit - 1 one generation remains; at limit the free user is denied."""
    _generations("alice", 2)
    decision = can_generate_ideas("alice", "free")
    assert decision.allowed is True
    assert decision.remaining == Limit.bounded(1)
    assert decision.limit == Limit.bounded(3)
    assert decision.reason is None

    _generations("alice", 1)
    decision = can_generate_ideas("alice", "free")
    assert decision.allowed is False
    assert decision.remaining == Limit.bounded(0)
    assert decision.reason


def test_can_generate_ideas_is_idempotent():
    _generations("alice", 1)
    first = can_generate_ideas("alice", "free")
    second = can_generate_ideas("alice", "free")
    assert first.to_dict() == second.to_dict()


def test_over_limit_remaining_never_negative():
    _generations("alice", 7)
    decision = can_generate_ideas("alice", "free")
    assert decision.remaining == Limit.bounded(0)
    assert decision.allowed is False


@pytest.mark.parametrize("plan", ["pro", "founder"])
def test_paid_plans_short_circuit(plan):
    counter = MagicMock(return_value=100)
    decision = can_generate_ideas("alice", plan, counter=counter)
    assert decision.allowed is True
    assert decision.remaining.is_unbounded
    assert decision.reason is None
    counter.assert_not_called()


def test_unknown_plan_is_counted_as_free():
    _generations("alice", 3)
    assert can_generate_ideas("alice", "diamond").allowed is False


@pytest.mark.parametrize(
    "check,table,limit,values",
    [
        (can_save_idea, ideas, 5, {"title": "idea {i}"}),
        (can_create_blueprint, founder_blueprints, 1, {"title": "bp {i}"}),
        (can_create_workspace_doc, workspace_documents, 3, {"title": "doc {i}"}),
    ],
)
def test_free_limits_for_counted_resources(check, table, limit, values):
    insert_rows(table, "alice", limit - 1, **values)
    assert check("alice", "free").allowed is True

    insert_rows(table, "bob", limit, **values)
    decision = check("bob", "free")
    assert decision.allowed is False
    assert decision.limit == Limit.bounded(limit)

    # Paid plans are never limited
    assert check("bob", "pro").allowed is True


def test_radar_scan_limit_for_free():
    assert can_run_radar_scan("alice", "free").allowed is True
    _radar_row("alice", datetime.now(timezone.utc))
    decision = can_run_radar_scan("alice", "free")
    assert decision.allowed is False
    assert "radar" in decision.reason


def test_count_failure_zero_is_permissive():
    failing = MagicMock(side_effect=RuntimeError("db down"))
    decision = check_counted_resource(
        "alice", "free", CountedResource.SAVED_IDEAS, counter=failing, on_error=CountFailure.ZERO
    )
    assert decision.allowed is True
    assert decision.remaining == Limit.bounded(5)


def test_count_failure_at_limit_denies(caplog):
    failing = MagicMock(side_effect=RuntimeError("db down"))
    with caplog.at_level("ERROR", logger="founderhq"):
        decision = check_counted_resource(
            "alice", "free", CountedResource.SAVED_IDEAS, counter=failing, on_error=CountFailure.AT_LIMIT
        )
    assert decision.allowed is False
    assert decision.remaining == Limit.bounded(0)
    assert any("[usage] count failed" in r.getMessage() for r in caplog.records)


def test_unbounded_limit_never_counts():
    counter = MagicMock(side_effect=RuntimeError("must not be called"))
    decision = check_counted_resource("alice", "pro", CountedResource.BLUEPRINTS, counter=counter)
    assert decision.allowed is True
    counter.assert_not_called()
