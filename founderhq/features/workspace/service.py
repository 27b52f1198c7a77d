"""
founderhq/features/workspace/service.py

Blueprints, workspace documents and document export. Each write passes the
plan guard first; export is Pro-only.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import re

from sqlalchemy import insert, select

from founderhq.core.database import founder_blueprints, get_db_session, workspace_documents
from founderhq.core.errors import NotFoundError, ValidationError
from founderhq.features.enforcement.guard import PlanGuard
from founderhq.features.paywall.copy import PlanErrorCode


logger = logging.getLogger("founderhq")

DOC_TYPES = {"notes", "strategy", "offer", "content_plan", "naming", "validation"}


def _require_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title is required")
    return cleaned


def create_blueprint(
    user_id: str,
    title: str,
    *,
    guard: PlanGuard,
    idea_id: Optional[int] = None,
    content: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    title = _require_title(title)
    guard.require_blueprint_slot(user_id)

    created_at = datetime.now(timezone.utc)
    with get_db_session() as session:
        result = session.execute(
            insert(founder_blueprints).values(
                user_id=user_id,
                idea_id=idea_id,
                title=title,
                content=content or {},
                created_at=created_at,
            )
        )
        blueprint_id = result.inserted_primary_key[0]

    logger.info("[workspace] blueprint created", extra={"user_id": user_id, "blueprint_id": blueprint_id})
    return {"id": blueprint_id, "title": title, "idea_id": idea_id, "created_at": created_at.isoformat()}


def create_workspace_doc(
    user_id: str,
    title: str,
    *,
    guard: PlanGuard,
    content: str = "",
    doc_type: str = "notes",
    idea_id: Optional[int] = None,
) -> Dict[str, Any]:
    title = _require_title(title)
    if doc_type not in DOC_TYPES:
        raise ValidationError(f"Unknown doc_type: {doc_type}")
    guard.require_workspace_slot(user_id)

    created_at = datetime.now(timezone.utc)
    with get_db_session() as session:
        result = session.execute(
            insert(workspace_documents).values(
                user_id=user_id,
                idea_id=idea_id,
                doc_type=doc_type,
                title=title,
                content=content,
                created_at=created_at,
            )
        )
        doc_id = result.inserted_primary_key[0]

    logger.info("[workspace] document created", extra={"user_id": user_id, "doc_id": doc_id})
    return {"id": doc_id, "title": title, "doc_type": doc_type, "created_at": created_at.isoformat()}


def _slug(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "document"


def export_workspace_doc(user_id: str, doc_id: int, *, guard: PlanGuard) -> Dict[str, str]:
    """Render a document as markdown. Other users' documents read as missing."""
    guard.require_feature(user_id, "export", PlanErrorCode.EXPORT_REQUIRES_PRO)

    with get_db_session() as session:
        row = session.execute(
            select(workspace_documents.c.title, workspace_documents.c.content, workspace_documents.c.doc_type)
            .where(workspace_documents.c.id == doc_id)
            .where(workspace_documents.c.user_id == user_id)
        ).first()

    if row is None:
        raise NotFoundError("Document not found")

    return {
        "filename": f"{_slug(row.title)}.md",
        "content_type": "text/markdown",
        "content": f"# {row.title}\n\n{row.content or ''}\n",
    }
