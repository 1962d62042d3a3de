"""Course chat router — enrolled learners ask questions about a course's materials."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_ai_client, get_enrollment_gate
from app.middleware.auth import get_current_user
from app.middleware.rate_limit import limiter
from app.models.user import User
from app.schemas.course_chat import (
    CourseChatRequest,
    CourseChatResponse,
    ChatSessionSummary,
    ChatMessageResponse,
    IndexingStatusResponse,
)
from app.services import chat_sessions
from app.services.access import EnrollmentGate, require_enrollment
from app.services.ai_client import AIClient
from app.services.course_chat import ask_question, get_course_info
from app.services.errors import CourseTutorError, NotEnrolledError
from app.services.indexing import count_course_chunks

router = APIRouter(prefix="/api/course-chat", tags=["course-chat"])


def _to_http(err: CourseTutorError) -> HTTPException:
    if isinstance(err, NotEnrolledError):
        return HTTPException(status_code=403, detail=str(err))
    return HTTPException(status_code=404, detail=str(err))


@router.post("", response_model=CourseChatResponse)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def ask(
    request: Request,
    req: CourseChatRequest,
    db: Session = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
    gate: EnrollmentGate = Depends(get_enrollment_gate),
    current_user: User = Depends(get_current_user),
):
    """Answer a question grounded in the course's uploaded materials."""
    try:
        result = await ask_question(
            db, ai, gate,
            user_id=current_user.id,
            course_id=req.course_id,
            question=req.message.strip(),
            session_id=req.session_id,
        )
    except CourseTutorError as e:
        raise _to_http(e)
    return CourseChatResponse(**result)


@router.get("/sessions/{session_id}", response_model=list[ChatMessageResponse])
def session_messages(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Messages of one session, oldest first."""
    session = chat_sessions.get_session(db, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found")
    if session.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your session")
    return chat_sessions.get_history(db, session_id)


@router.get("/{course_id}/history", response_model=list[ChatSessionSummary])
def session_history(
    course_id: str,
    db: Session = Depends(get_db),
    gate: EnrollmentGate = Depends(get_enrollment_gate),
    current_user: User = Depends(get_current_user),
):
    """The caller's sessions for a course, most recently active first."""
    try:
        require_enrollment(gate, current_user.id, course_id)
    except NotEnrolledError as e:
        raise _to_http(e)
    return chat_sessions.list_user_sessions(db, current_user.id, course_id)


@router.get("/{course_id}/status", response_model=IndexingStatusResponse)
def indexing_status(
    course_id: str,
    db: Session = Depends(get_db),
    gate: EnrollmentGate = Depends(get_enrollment_gate),
    current_user: User = Depends(get_current_user),
):
    try:
        require_enrollment(gate, current_user.id, course_id)
    except NotEnrolledError as e:
        raise _to_http(e)

    course_info = get_course_info(db, course_id)
    if not course_info:
        raise HTTPException(status_code=404, detail="Course not found")

    chunk_count = count_course_chunks(db, course_id)
    return IndexingStatusResponse(
        course_id=course_id,
        course_name=course_info["name"],
        instructor_name=course_info["instructor_name"],
        indexed_chunks=chunk_count,
        is_ready=chunk_count > 0,
    )
