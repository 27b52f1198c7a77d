"""
founderhq/features/radar/service.py

Niche radar: AI market signals for the founder's chosen idea.

A scan replaces the user's previous signals with one new batch; every row in
a batch shares the same created_at so scans can be counted by minute.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import delete, insert, select

from founderhq.core.database import get_db_session, ideas, niche_radar
from founderhq.core.errors import ValidationError
from founderhq.features.ai.client import AIClient, function_tool
from founderhq.features.enforcement.guard import PlanGuard


logger = logging.getLogger("founderhq")

VALID_SIGNAL_TYPES = (
    "trend",
    "problem",
    "market_shift",
    "consumer_behavior",
    "tech_tailwind",
    "platform_trend",
    "meme_format",
    "creator_monetization_shift",
    "automation_tailwind",
)
RISK_LEVELS = ("low", "medium", "high")
REQUIRED_FIELDS = ("signal_type", "title", "description", "recommended_action")
DEFAULT_PRIORITY = 50

RADAR_TOOL = function_tool(
    "generate_radar_signals",
    "Generate market signals for the founder's idea",
    {
        "type": "object",
        "properties": {
            "signals": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "signal_type": {"type": "string", "enum": list(VALID_SIGNAL_TYPES)},
                        "title": {"type": "string"},
                        "description": {"type": "string"},
                        "priority_score": {"type": "number"},
                        "recommended_action": {"type": "string"},
                        "why_now": {"type": "string"},
                        "relevance_to_idea": {"type": "string"},
                        "risk_level": {"type": "string", "enum": list(RISK_LEVELS)},
                        "metadata": {"type": "object"},
                    },
                    "required": list(REQUIRED_FIELDS) + ["why_now", "relevance_to_idea", "risk_level"],
                },
            }
        },
        "required": ["signals"],
    },
)


def _priority(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_PRIORITY
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_PRIORITY


def format_radar_signals(raw_signals: Any) -> List[Dict[str, Any]]:
    """
    Validate and normalize raw AI signals.

    Drops entries with a missing required field or an unknown signal_type,
    trims text, rounds priority (default 50) and defaults risk_level to medium.
    """
    if not isinstance(raw_signals, list):
        logger.warning("[radar] signals payload is not a list")
        return []

    formatted = []
    for signal in raw_signals:
        if not isinstance(signal, dict):
            continue
        if any(not isinstance(signal.get(f), str) or not signal.get(f).strip() for f in REQUIRED_FIELDS):
            logger.debug("[radar] skipping incomplete signal")
            continue
        if signal["signal_type"] not in VALID_SIGNAL_TYPES:
            logger.debug(f"[radar] skipping signal_type {signal['signal_type']}")
            continue

        metadata = dict(signal.get("metadata") or {}) if isinstance(signal.get("metadata"), dict) else {}
        risk = signal.get("risk_level")
        metadata.update({
            "why_now": signal.get("why_now") or None,
            "relevance_to_idea": signal.get("relevance_to_idea") or None,
            "risk_level": risk if risk in RISK_LEVELS else "medium",
        })
        formatted.append({
            "signal_type": signal["signal_type"],
            "title": signal["title"].strip(),
            "description": signal["description"].strip(),
            "priority_score": _priority(signal.get("priority_score")),
            "recommended_action": signal["recommended_action"].strip(),
            "metadata": metadata,
        })
    return formatted


def _load_idea(user_id: str, idea_id: Optional[int]):
    query = select(ideas.c.id, ideas.c.title, ideas.c.description, ideas.c.category).where(ideas.c.user_id == user_id)
    if idea_id is not None:
        query = query.where(ideas.c.id == idea_id)
    else:
        # Prefer the chosen idea, then the most recent one
        query = query.order_by((ideas.c.status == "chosen").desc(), ideas.c.created_at.desc())
    with get_db_session() as session:
        return session.execute(query.limit(1)).first()


def _radar_messages(idea) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": "You are a market researcher who identifies emerging niches and signals."},
        {
            "role": "user",
            "content": (
                f"Idea: {idea.title}\n"
                f"Description: {idea.description or 'n/a'}\n"
                f"Category: {idea.category or 'n/a'}\n"
                "Return 3-6 signals."
            ),
        },
    ]


async def generate_niche_radar(
    user_id: str,
    idea_id: Optional[int] = None,
    *,
    guard: PlanGuard,
    ai_client: AIClient,
) -> List[Dict[str, Any]]:
    """
    Run one guarded radar scan for the user's idea.

    Raises:
        PlanLimitError: RADAR_LIMIT_REACHED
        ValidationError: no idea to scan
        AIProviderError (and subclasses): provider failures
    """
    guard.require_radar_scan(user_id)

    idea = _load_idea(user_id, idea_id)
    if idea is None:
        raise ValidationError("No idea available for a radar scan")

    raw = await ai_client.complete(_radar_messages(idea), tool=RADAR_TOOL)
    signals = format_radar_signals(raw.get("signals") if isinstance(raw, dict) else None)

    batch_at = datetime.now(timezone.utc)
    rows = [
        {"user_id": user_id, "idea_id": idea.id, "created_at": batch_at, **signal}
        for signal in signals
    ]
    if not rows:
        # Keep the previous batch; an empty scan must not reset the scan count
        logger.warning("[radar] no usable signals returned", extra={"user_id": user_id})
        return []

    with get_db_session() as session:
        session.execute(delete(niche_radar).where(niche_radar.c.user_id == user_id))
        session.execute(insert(niche_radar), rows)

    logger.info("[radar] scan stored", extra={"user_id": user_id, "idea_id": idea.id, "signals": len(rows)})
    return [{"idea_id": idea.id, "created_at": batch_at.isoformat(), **signal} for signal in signals]
