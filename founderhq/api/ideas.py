"""
Ideas API.

- POST /v1/ideas/generate: guarded idea generation
- POST /v1/ideas/save: guarded save into the idea library
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from founderhq.api.deps import get_ai_client, get_plan_guard
from founderhq.core.auth import get_current_user_id
from founderhq.features.ai.client import AIClient
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.features.ideas.service import generate_ideas, save_idea
from founderhq.models.plan import IdeaMode

router = APIRouter(prefix="/v1/ideas", tags=["ideas"])


class GenerateIdeasRequest(BaseModel):
    mode: IdeaMode = IdeaMode.BREADTH
    focus_area: Optional[str] = Field(default=None, max_length=500)


class SaveIdeaRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    category: Optional[str] = None
    mode: Optional[str] = None
    source_type: Optional[str] = None
    overall_fit_score: Optional[float] = None


@router.post("/generate")
async def generate(
    body: GenerateIdeasRequest,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
    ai_client: AIClient = Depends(get_ai_client),
):
    return await generate_ideas(user_id, body.mode, body.focus_area, guard=guard, ai_client=ai_client)


@router.post("/save")
def save(
    body: SaveIdeaRequest,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
):
    return save_idea(user_id, body.model_dump(), guard=guard)
