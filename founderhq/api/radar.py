"""Niche radar API: POST /v1/radar/generate (guarded scan)."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from founderhq.api.deps import get_ai_client, get_plan_guard
from founderhq.core.auth import get_current_user_id
from founderhq.features.ai.client import AIClient
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.features.radar.service import generate_niche_radar

router = APIRouter(prefix="/v1/radar", tags=["radar"])


class RadarRequest(BaseModel):
    idea_id: Optional[int] = None


@router.post("/generate")
async def generate_radar(
    body: RadarRequest,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
    ai_client: AIClient = Depends(get_ai_client),
):
    signals = await generate_niche_radar(user_id, body.idea_id, guard=guard, ai_client=ai_client)
    return {"signals": signals}
