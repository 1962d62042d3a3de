"""Retriever — exhaustive cosine-similarity ranking over one course's chunks."""

import json
import math

from sqlalchemy.orm import Session

from app.config import settings
from app.models.content_item import ContentItem
from app.models.content_chunk import ContentChunk
from app.services.ai_client import AIClient


def cosine_similarity(a: list[float] | None, b: list[float] | None) -> float:
    """Cosine similarity of two vectors; 0.0 for missing, mismatched or zero vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _decode_embedding(raw: str | None) -> list[float] | None:
    if not raw:
        return None
    try:
        vec = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(vec, list):
        return None
    try:
        return [float(v) for v in vec]
    except (TypeError, ValueError):
        return None


def load_course_chunks(db: Session, course_id: str) -> list[tuple[ContentChunk, str]]:
    """All chunks of a course with their content title, in stored order."""
    return (
        db.query(ContentChunk, ContentItem.title)
        .join(ContentItem, ContentChunk.content_id == ContentItem.id)
        .filter(ContentChunk.course_id == course_id)
        .order_by(ContentItem.created_at, ContentChunk.content_id, ContentChunk.chunk_index)
        .all()
    )


def _as_result(chunk: ContentChunk, title: str, score: float) -> dict:
    return {
        "chunk_id": chunk.id,
        "content_id": chunk.content_id,
        "chunk_index": chunk.chunk_index,
        "text": chunk.text,
        "content_title": title,
        "score": score,
    }


async def retrieve_relevant_chunks(
    db: Session,
    ai: AIClient,
    course_id: str,
    query: str,
    top_k: int | None = None,
) -> list[dict]:
    """Rank a course's chunks against a query and return the best ``top_k``.

    Without a query embedding the first ``top_k`` chunks are returned in
    stored order with a uniform score of 1.0.
    """
    top_k = settings.RAG_TOP_K if top_k is None else max(top_k, 0)
    if top_k == 0:
        return []

    rows = load_course_chunks(db, course_id)
    if not rows:
        return []

    query_vec = await ai.embed(query)
    if query_vec is None:
        return [_as_result(chunk, title, 1.0) for chunk, title in rows[:top_k]]

    scored = [
        _as_result(chunk, title, cosine_similarity(query_vec, _decode_embedding(chunk.embedding)))
        for chunk, title in rows
    ]
    # sorted() is stable, so equal scores keep stored order
    scored = sorted(scored, key=lambda r: r["score"], reverse=True)
    return scored[:top_k]
