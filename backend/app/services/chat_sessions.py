"""Conversation manager — course chat sessions and their messages."""

import json
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.chat import ChatSession, ChatMessage
from app.services.errors import SessionNotFoundError

MESSAGE_ROLES = ("user", "assistant")


def resolve_session(db: Session, user_id: str, course_id: str, course_name: str | None = None) -> str:
    """Return the most recently active session for (user, course), creating one if none exists.

    Two concurrent first questions may both create a session; the next
    lookup then simply resumes the more recent one.
    """
    existing = (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id, ChatSession.course_id == course_id)
        .order_by(ChatSession.last_message_at.desc(), ChatSession.created_at.desc())
        .first()
    )
    if existing:
        return existing.id

    session = ChatSession(
        user_id=user_id,
        course_id=course_id,
        title=f"Chat - {course_name or 'Course'}",
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session.id


def get_session(db: Session, session_id: str) -> ChatSession | None:
    return db.query(ChatSession).filter(ChatSession.id == session_id).first()


def append_message(
    db: Session,
    session_id: str,
    role: str,
    content: str,
    used_chunk_ids: list[str] | None = None,
) -> ChatMessage:
    """Persist one turn and bump the session's last activity."""
    if role not in MESSAGE_ROLES:
        raise ValueError(f"Invalid message role '{role}'")

    session = get_session(db, session_id)
    if not session:
        raise SessionNotFoundError(session_id)

    now = datetime.now(timezone.utc)
    message = ChatMessage(
        session_id=session_id,
        role=role,
        content=content,
        used_chunk_ids=json.dumps(list(used_chunk_ids or [])),
        created_at=now,
    )
    db.add(message)
    session.last_message_at = now
    db.commit()
    db.refresh(message)
    return message


def get_history(db: Session, session_id: str) -> list[ChatMessage]:
    """All messages of a session in creation order."""
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.created_at)
        .all()
    )


def list_user_sessions(db: Session, user_id: str, course_id: str) -> list[ChatSession]:
    return (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id, ChatSession.course_id == course_id)
        .order_by(ChatSession.last_message_at.desc())
        .all()
    )


def used_chunk_ids(message: ChatMessage) -> list[str]:
    return json.loads(message.used_chunk_ids) if message.used_chunk_ids else []
