"""Course chat — grounded answers over a course's indexed materials.

The answer for a question is produced from a single system + user turn:
the system prompt carries the retrieved chunks as the only permitted source
of facts. Citations are the chunks that were fed in, in retrieval order,
never parsed from the model's reply.
"""

import logging

from sqlalchemy.orm import Session

from app.models.course import Course
from app.models.user import User
from app.services import chat_sessions
from app.services.access import EnrollmentGate, require_enrollment
from app.services.ai_client import AIClient
from app.services.errors import CourseNotFoundError, SessionNotFoundError
from app.services.retrieval import retrieve_relevant_chunks

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"

NO_MATERIALS_TEMPLATE = (
    "I don't have any course materials for {course_name} yet. "
    "Please ask your teacher to upload content first."
)
NOT_IN_MATERIALS_REPLY = (
    "I don't have information about that in the course materials. "
    "Please ask your teacher for clarification."
)
AI_UNAVAILABLE_REPLY = (
    "The AI tutor is not enabled yet. "
    "Please contact your administrator to enable this feature."
)
AI_ERROR_REPLY = (
    "The AI tutor couldn't generate a response right now. Please try again in a moment."
)
EMPTY_REPLY = "I couldn't generate a response."


def get_course_info(db: Session, course_id: str) -> dict | None:
    """Name, code and instructor display name of a course, or None."""
    row = (
        db.query(Course.name, Course.code, User.display_name)
        .outerjoin(User, Course.instructor_id == User.id)
        .filter(Course.id == course_id)
        .first()
    )
    if not row:
        return None
    name, code, instructor_name = row
    return {
        "name": name,
        "code": code or "",
        "instructor_name": instructor_name or "Instructor",
    }


def build_context(chunks: list[dict]) -> str:
    """Number each chunk as a source, labelled with its content title."""
    parts = [
        f"[Source {i}: {c['content_title']}]\n{c['text']}"
        for i, c in enumerate(chunks, start=1)
    ]
    return CONTEXT_SEPARATOR.join(parts)


def build_system_prompt(course_info: dict, context: str) -> str:
    code = f" ({course_info['code']})" if course_info.get("code") else ""
    return (
        f'You are a helpful tutor assistant for the course "{course_info["name"]}"{code}, '
        f"taught by {course_info['instructor_name']}.\n\n"
        "IMPORTANT RULES:\n"
        "1. ONLY answer questions using the provided course materials below.\n"
        f'2. If the answer is not found in the materials, say: "{NOT_IN_MATERIALS_REPLY}"\n'
        '3. When answering, cite which source you\'re using (e.g., "According to [Source 1]...").\n'
        "4. Be helpful, clear, and educational in your responses.\n"
        "5. Do NOT make up information or use knowledge outside of the provided materials.\n\n"
        "COURSE MATERIALS:\n"
        f"{context}"
    )


def build_citations(chunks: list[dict]) -> list[dict]:
    return [
        {
            "content_id": c["content_id"],
            "title": c["content_title"],
            "chunk_index": c["chunk_index"],
        }
        for c in chunks
    ]


async def generate_answer(
    db: Session,
    ai: AIClient,
    course_id: str,
    question: str,
    top_k: int | None = None,
    course_info: dict | None = None,
) -> dict:
    """Answer one question from the course's materials.

    Returns {"answer", "citations", "used_chunk_ids"}. An empty corpus or an
    unavailable/failing generator produce a templated answer with no
    citations instead of an error.
    """
    course_info = course_info or get_course_info(db, course_id)
    if not course_info:
        raise CourseNotFoundError(course_id)

    chunks = await retrieve_relevant_chunks(db, ai, course_id, question, top_k=top_k)
    if not chunks:
        return {
            "answer": NO_MATERIALS_TEMPLATE.format(course_name=course_info["name"]),
            "citations": [],
            "used_chunk_ids": [],
        }

    if not ai.can_generate:
        return {"answer": AI_UNAVAILABLE_REPLY, "citations": [], "used_chunk_ids": []}

    system_prompt = build_system_prompt(course_info, build_context(chunks))
    try:
        answer = await ai.generate(system_prompt, question)
    except Exception:
        logger.exception("Error generating chat response for course %s", course_id)
        return {"answer": AI_ERROR_REPLY, "citations": [], "used_chunk_ids": []}

    if answer is None:
        return {"answer": AI_UNAVAILABLE_REPLY, "citations": [], "used_chunk_ids": []}

    return {
        "answer": answer.strip() or EMPTY_REPLY,
        "citations": build_citations(chunks),
        "used_chunk_ids": [c["chunk_id"] for c in chunks],
    }


async def ask_question(
    db: Session,
    ai: AIClient,
    gate: EnrollmentGate,
    user_id: str,
    course_id: str,
    question: str,
    session_id: str | None = None,
) -> dict:
    """Inbound answer-question flow.

    Enrollment and course existence are checked before anything is written.
    Both turns are persisted after the answer is produced; a failed write
    propagates.
    """
    require_enrollment(gate, user_id, course_id)

    course_info = get_course_info(db, course_id)
    if not course_info:
        raise CourseNotFoundError(course_id)

    if session_id:
        session = chat_sessions.get_session(db, session_id)
        if not session or session.user_id != user_id or session.course_id != course_id:
            raise SessionNotFoundError(session_id)
    else:
        session_id = chat_sessions.resolve_session(db, user_id, course_id, course_info["name"])

    result = await generate_answer(db, ai, course_id, question, course_info=course_info)

    chat_sessions.append_message(db, session_id, "user", question)
    chat_sessions.append_message(db, session_id, "assistant", result["answer"], result["used_chunk_ids"])

    return {
        "session_id": session_id,
        "answer": result["answer"],
        "citations": result["citations"],
    }
