"""Content router — (re-)index instructor materials for course chat."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_ai_client
from app.middleware.auth import require_teacher
from app.models.content_item import ContentItem
from app.models.user import User
from app.schemas.content import IndexContentResponse
from app.services.ai_client import AIClient
from app.services.errors import ContentNotFoundError
from app.services.indexing import index_content

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post("/{content_id}/index", response_model=IndexContentResponse)
async def reindex_content(
    content_id: str,
    db: Session = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
    current_user: User = Depends(require_teacher),
):
    """Replace the stored chunks of a content item with a fresh chunking + embedding pass."""
    content = db.query(ContentItem).filter(ContentItem.id == content_id).first()
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    if current_user.role != "master_admin" and content.teacher_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your content")

    try:
        chunks_indexed = await index_content(db, ai, content_id)
    except ContentNotFoundError:
        # Deleted between the ownership check and indexing
        raise HTTPException(status_code=404, detail="Content not found")

    return IndexContentResponse(success=True, content_id=content_id, chunks_indexed=chunks_indexed)
