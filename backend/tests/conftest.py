"""Shared fixtures: in-memory database, seed data and a fake AI capability."""

import os
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.database import Base
from app import models  # noqa: F401
from app.models import User, Course, CourseEnrollment, ContentItem


class FakeAI:
    """Stand-in for AIClient.

    ``vectors`` maps a keyword to the embedding returned for any text that
    contains it (first match wins); other texts get ``default_vector``.
    """

    def __init__(self, vectors=None, default_vector=None, reply="Grounded answer [Source 1].",
                 can_generate=True, fail_generate=False, embed_available=True):
        self.vectors = vectors or {}
        self.default_vector = default_vector
        self.reply = reply
        self._can_generate = can_generate
        self.fail_generate = fail_generate
        self.embed_available = embed_available
        self.embed_calls = []
        self.generate_calls = []

    @property
    def can_embed(self):
        return self.embed_available

    @property
    def can_generate(self):
        return self._can_generate

    def provider_name(self):
        return "fake" if self._can_generate else "none"

    async def embed(self, text):
        self.embed_calls.append(text)
        if not self.embed_available:
            return None
        for keyword, vec in self.vectors.items():
            if keyword in text:
                return vec
        return self.default_vector

    async def generate(self, system, user_message):
        self.generate_calls.append((system, user_message))
        if not self._can_generate:
            return None
        if self.fail_generate:
            raise RuntimeError("provider exploded")
        return self.reply

    async def health_check(self):
        return {"provider": self.provider_name(), "status": "ok"}


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    """A teacher, an enrolled student, an outsider and one course."""
    teacher = User(id="teacher-1", display_name="Dr. Ada Lovelace", role="teacher")
    student = User(id="student-1", display_name="Sam Student", role="student")
    outsider = User(id="student-2", display_name="Olive Outsider", role="student")
    course = Course(id="course-1", name="Intro to Biology", code="BIO101", instructor_id=teacher.id)
    db.add_all([teacher, student, outsider, course])
    db.add(CourseEnrollment(course_id=course.id, user_id=student.id))
    db.commit()
    return {"teacher": teacher, "student": student, "outsider": outsider, "course": course}


def add_content(db, course_id="course-1", teacher_id="teacher-1", title="Lecture notes",
                text=None, content_id=None, **kwargs):
    item = ContentItem(
        course_id=course_id,
        teacher_id=teacher_id,
        title=title,
        text_content=text,
        **({"id": content_id} if content_id else {}),
        **kwargs,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def sentences(topic: str, count: int) -> str:
    """``count`` distinct sentences about ``topic``, each ~60 characters."""
    return " ".join(
        f"Sentence {i} explains an important idea about {topic}."
        for i in range(count)
    )


@pytest.fixture
def fake_ai():
    return FakeAI()
