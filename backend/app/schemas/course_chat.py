"""Course chat request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CourseChatRequest(BaseModel):
    course_id: str
    message: str = Field(..., min_length=1, max_length=4000, pattern=r"\S")
    session_id: Optional[str] = None


class Citation(BaseModel):
    content_id: str
    title: str
    chunk_index: int


class CourseChatResponse(BaseModel):
    session_id: str
    answer: str
    citations: list[Citation]


class ChatSessionSummary(BaseModel):
    id: str
    title: Optional[str]
    last_message_at: datetime

    class Config:
        from_attributes = True


class ChatMessageResponse(BaseModel):
    role: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class IndexingStatusResponse(BaseModel):
    course_id: str
    course_name: str
    instructor_name: str
    indexed_chunks: int
    is_ready: bool
