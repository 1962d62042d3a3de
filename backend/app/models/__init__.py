"""SQLAlchemy ORM models."""

from app.models.user import User
from app.models.course import Course, CourseEnrollment
from app.models.content_item import ContentItem
from app.models.content_chunk import ContentChunk
from app.models.chat import ChatSession, ChatMessage

__all__ = [
    "User",
    "Course",
    "CourseEnrollment",
    "ContentItem",
    "ContentChunk",
    "ChatSession",
    "ChatMessage",
]
