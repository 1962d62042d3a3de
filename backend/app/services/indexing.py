"""Chunk store — (re-)index content items into embedded chunks."""

import json
import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.config import settings
from app.models.content_item import ContentItem
from app.models.content_chunk import ContentChunk
from app.services.ai_client import AIClient
from app.services.chunking import chunk_text, estimate_token_count
from app.services.errors import ContentNotFoundError
from app.services.text_extraction import extract_text

logger = logging.getLogger(__name__)


def delete_content_chunks(db: Session, content_id: str) -> int:
    """Delete every chunk of a content item. Does not commit."""
    return (
        db.query(ContentChunk)
        .filter(ContentChunk.content_id == content_id)
        .delete(synchronize_session=False)
    )


def count_course_chunks(db: Session, course_id: str) -> int:
    return db.query(ContentChunk).filter(ContentChunk.course_id == course_id).count()


async def index_content(
    db: Session,
    ai: AIClient,
    content_id: str,
    extractor: Callable[[ContentItem], str] = extract_text,
) -> int:
    """Full pipeline: extract → chunk → embed → replace stored chunks.

    Re-indexing always replaces the whole chunk set of the content item.
    Embeddings are requested one chunk at a time; a failed embedding leaves
    that chunk's embedding NULL and indexing carries on. The old chunk set is
    swapped for the new one in a single commit, so readers see either the
    old or the new set.

    Returns the number of chunks stored.
    """
    content = db.query(ContentItem).filter(ContentItem.id == content_id).first()
    if not content:
        raise ContentNotFoundError(content_id)

    text = extractor(content) or ""

    if len(text.strip()) < settings.RAG_MIN_CHUNK_LENGTH:
        removed = delete_content_chunks(db, content_id)
        db.commit()
        logger.info("Content %s has no indexable text (removed %d old chunks)", content_id, removed)
        return 0

    pieces = chunk_text(text)

    embeddings: list[list[float] | None] = []
    for piece in pieces:
        embeddings.append(await ai.embed(piece))

    delete_content_chunks(db, content_id)
    for i, (piece, embedding) in enumerate(zip(pieces, embeddings)):
        db.add(ContentChunk(
            content_id=content.id,
            course_id=content.course_id,
            teacher_id=content.teacher_id,
            chunk_index=i,
            text=piece,
            embedding=json.dumps(embedding) if embedding is not None else None,
            token_count=estimate_token_count(piece),
        ))
    db.commit()

    missing = sum(1 for e in embeddings if e is None)
    if missing:
        logger.warning("Content %s: %d of %d chunks stored without embeddings", content_id, missing, len(pieces))
    logger.info("Indexed %d chunks for content %s", len(pieces), content_id)
    return len(pieces)
