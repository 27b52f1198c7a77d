"""
Blueprints and workspace API.

- POST /v1/blueprints
- POST /v1/workspace/docs
- GET  /v1/workspace/docs/{doc_id}/export (Pro only)
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from founderhq.api.deps import get_plan_guard
from founderhq.core.auth import get_current_user_id
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.features.workspace.service import create_blueprint, create_workspace_doc, export_workspace_doc

router = APIRouter(tags=["workspace"])


class BlueprintRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    idea_id: Optional[int] = None
    content: Optional[Dict[str, Any]] = None


class WorkspaceDocRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = ""
    doc_type: str = "notes"
    idea_id: Optional[int] = None


@router.post("/v1/blueprints")
def create_blueprint_route(
    body: BlueprintRequest,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
):
    return create_blueprint(user_id, body.title, guard=guard, idea_id=body.idea_id, content=body.content)


@router.post("/v1/workspace/docs")
def create_doc_route(
    body: WorkspaceDocRequest,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
):
    return create_workspace_doc(
        user_id,
        body.title,
        guard=guard,
        content=body.content,
        doc_type=body.doc_type,
        idea_id=body.idea_id,
    )


@router.get("/v1/workspace/docs/{doc_id}/export")
def export_doc_route(
    doc_id: int,
    user_id: str = Depends(get_current_user_id),
    guard: PlanGuard = Depends(get_plan_guard),
):
    exported = export_workspace_doc(user_id, doc_id, guard=guard)
    return PlainTextResponse(
        exported["content"],
        media_type=exported["content_type"],
        headers={"Content-Disposition": f'attachment; filename="{exported["filename"]}"'},
    )
