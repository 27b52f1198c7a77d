"""
founderhq/features/ideas/service.py

Idea generation and the saved-idea library.

Both operations pass the server-side plan guard before touching the AI
provider or storage.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import insert, select

from founderhq.core.database import founder_generated_ideas, get_db_session, ideas
from founderhq.core.errors import AIProviderError, ValidationError
from founderhq.features.ai.client import AIClient, function_tool
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.models.plan import IdeaMode


logger = logging.getLogger("founderhq")

IDEAS_TOOL = function_tool(
    "return_ideas",
    "Return a list of business ideas for the founder",
    {
        "type": "object",
        "properties": {
            "ideas": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "description": {"type": "string"},
                        "category": {"type": "string"},
                    },
                    "required": ["title", "description"],
                },
            }
        },
        "required": ["ideas"],
    },
)


def _generation_messages(mode: IdeaMode, focus_area: Optional[str]) -> List[Dict[str, str]]:
    user = f"Mode: {mode.value}."
    if focus_area:
        user += f" Focus area: {focus_area}."
    return [
        {"role": "system", "content": "You generate concise, concrete business ideas for solo founders."},
        {"role": "user", "content": user},
    ]


def _clean_ideas(raw: Any) -> List[Dict[str, Any]]:
    items = raw.get("ideas") if isinstance(raw, dict) else None
    if not isinstance(items, list):
        raise AIProviderError("AI response did not include ideas")
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        cleaned.append({
            "title": title,
            "description": str(item.get("description") or "").strip(),
            "category": (str(item["category"]).strip() or None) if item.get("category") else None,
        })
    return cleaned


async def generate_ideas(
    user_id: str,
    mode: IdeaMode,
    focus_area: Optional[str] = None,
    *,
    guard: PlanGuard,
    ai_client: AIClient,
) -> Dict[str, Any]:
    """
    Run one guarded idea generation and record it.

    Raises:
        PlanLimitError: IDEA_LIMIT_REACHED or MODE_REQUIRES_PRO
        AIProviderError (and subclasses): provider failures
    """
    server_plan = guard.require_idea_generation(user_id, mode)

    raw = await ai_client.complete(_generation_messages(mode, focus_area), tool=IDEAS_TOOL)
    generated = _clean_ideas(raw)
    if not generated:
        raise AIProviderError("AI returned no usable ideas")

    with get_db_session() as session:
        result = session.execute(
            insert(founder_generated_ideas).values(
                user_id=user_id,
                mode=mode.value,
                title=generated[0]["title"],
                payload={"ideas": generated, "focus_area": focus_area},
                created_at=datetime.now(timezone.utc),
            )
        )
        generation_id = result.inserted_primary_key[0]

    logger.info(
        "[ideas] generated",
        extra={"user_id": user_id, "plan": server_plan.plan.value, "mode": mode.value, "count": len(generated)},
    )
    return {"generation_id": generation_id, "mode": mode.value, "ideas": generated}


def save_idea(user_id: str, idea: Dict[str, Any], *, guard: PlanGuard) -> Dict[str, Any]:
    """
    Save an idea to the user's library. Saving a title that already exists
    returns the existing row.

    Raises:
        ValidationError: missing title
        PlanLimitError: TRIAL_EXPIRED or LIBRARY_FULL_TRIAL
    """
    title = str(idea.get("title") or "").strip()
    if not title:
        raise ValidationError("Idea title is required")

    guard.require_saved_idea_slot(user_id)

    with get_db_session() as session:
        existing = session.execute(
            select(ideas.c.id).where(ideas.c.user_id == user_id).where(ideas.c.title == title)
        ).first()
        if existing:
            return {"id": existing.id, "title": title, "created": False}

        score = idea.get("overall_fit_score")
        result = session.execute(
            insert(ideas).values(
                user_id=user_id,
                title=title,
                description=idea.get("description"),
                category=idea.get("category"),
                mode=idea.get("mode") or "generated",
                status="candidate",
                source_type=idea.get("source_type") or "generated",
                overall_fit_score=int(round(score)) if isinstance(score, (int, float)) else None,
                created_at=datetime.now(timezone.utc),
            )
        )
        idea_id = result.inserted_primary_key[0]

    logger.info("[ideas] saved", extra={"user_id": user_id, "idea_id": idea_id})
    return {"id": idea_id, "title": title, "created": True}
