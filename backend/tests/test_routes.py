"""HTTP-level tests for the course chat and content routers."""

import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient
from jose import jwt

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.config import settings
from app.database import get_db
from app.dependencies import get_ai_client
from app.main import app
from app.middleware.rate_limit import limiter
from app.models.user import User
from app.services.indexing import index_content

from conftest import FakeAI, add_content, sentences


def _auth(user_id: str) -> dict:
    token = jwt.encode({"sub": user_id}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ai():
    return FakeAI(vectors={"cells": [1.0, 0.0], "plants": [0.0, 1.0]}, reply="Cells are units of life.")


@pytest.fixture
def client(session_factory, seed, ai):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ai_client] = lambda: ai
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


class TestAsk:

    def test_requires_token(self, client):
        """Asking without a token is rejected."""
        resp = client.post("/api/course-chat", json={"course_id": "course-1", "message": "hi"})
        assert resp.status_code in (401, 403)

    def test_rejects_bad_token(self, client):
        """Asking with a forged token is rejected."""
        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "hi"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    def test_not_enrolled(self, client):
        """Students outside the course get 403."""
        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "What are cells?"},
            headers=_auth("student-2"),
        )
        assert resp.status_code == 403
        assert "Intro to Biology" not in resp.text

    def test_blank_message(self, client):
        """A whitespace-only message fails validation."""
        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "   "},
            headers=_auth("student-1"),
        )
        assert resp.status_code == 422

    def test_no_materials_yet(self, client, ai):
        """An empty course answers with the no-materials template."""
        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "What are cells?"},
            headers=_auth("student-1"),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["citations"] == []
        assert "Intro to Biology" in body["answer"]
        assert ai.generate_calls == []

    def test_answer_with_citations(self, client, db, ai):
        """A grounded answer comes back with its citations and session id."""
        content = add_content(db, title="Cell Biology", text=sentences("cells", 10))
        asyncio.run(index_content(db, ai, content.id))

        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "What are cells?"},
            headers=_auth("student-1"),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["answer"] == "Cells are units of life."
        assert body["citations"] == [{"content_id": content.id, "title": "Cell Biology", "chunk_index": 0}]

        again = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "More please"},
            headers=_auth("student-1"),
        )
        assert again.json()["session_id"] == body["session_id"]

    def test_unknown_session_id(self, client):
        """An unknown session id gets 404."""
        resp = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "hi", "session_id": "nope"},
            headers=_auth("student-1"),
        )
        assert resp.status_code == 404


class TestHistory:

    def test_sessions_and_messages(self, client):
        """Session history and messages are visible to their owner."""
        asked = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "What are cells?"},
            headers=_auth("student-1"),
        ).json()

        sessions = client.get("/api/course-chat/course-1/history", headers=_auth("student-1")).json()
        assert [s["id"] for s in sessions] == [asked["session_id"]]
        assert sessions[0]["title"] == "Chat - Intro to Biology"
        assert sessions[0]["last_message_at"]

        messages = client.get(f"/api/course-chat/sessions/{asked['session_id']}", headers=_auth("student-1")).json()
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["content"] == "What are cells?"

    def test_history_requires_enrollment(self, client):
        """Session history requires enrollment."""
        resp = client.get("/api/course-chat/course-1/history", headers=_auth("student-2"))
        assert resp.status_code == 403

    def test_other_users_session_forbidden(self, client):
        """Another user's session messages are forbidden."""
        asked = client.post(
            "/api/course-chat",
            json={"course_id": "course-1", "message": "What are cells?"},
            headers=_auth("student-1"),
        ).json()
        resp = client.get(f"/api/course-chat/sessions/{asked['session_id']}", headers=_auth("student-2"))
        assert resp.status_code == 403

    def test_unknown_session(self, client):
        """Reading an unknown session gets 404."""
        resp = client.get("/api/course-chat/sessions/missing", headers=_auth("student-1"))
        assert resp.status_code == 404


class TestStatus:

    def test_not_ready_then_ready(self, client, db, ai):
        """Status flips to ready once content is indexed."""
        resp = client.get("/api/course-chat/course-1/status", headers=_auth("student-1"))
        assert resp.status_code == 200
        assert resp.json() == {
            "course_id": "course-1",
            "course_name": "Intro to Biology",
            "instructor_name": "Dr. Ada Lovelace",
            "indexed_chunks": 0,
            "is_ready": False,
        }

        content = add_content(db, text=sentences("plants", 30))
        count = asyncio.run(index_content(db, ai, content.id))

        body = client.get("/api/course-chat/course-1/status", headers=_auth("student-1")).json()
        assert body["indexed_chunks"] == count > 0
        assert body["is_ready"] is True

    def test_status_requires_enrollment(self, client):
        """Status requires enrollment."""
        resp = client.get("/api/course-chat/course-1/status", headers=_auth("student-2"))
        assert resp.status_code == 403


class TestReindexRoute:

    def test_teacher_reindexes_own_content(self, client, db):
        """The owning teacher can re-index their content."""
        content = add_content(db, text=sentences("cells", 30))
        resp = client.post(f"/api/content/{content.id}/index", headers=_auth("teacher-1"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["chunks_indexed"] >= 1

    def test_student_cannot_reindex(self, client, db):
        """Students cannot re-index content."""
        content = add_content(db, text=sentences("cells", 30))
        resp = client.post(f"/api/content/{content.id}/index", headers=_auth("student-1"))
        assert resp.status_code == 403

    def test_other_teacher_cannot_reindex(self, client, db):
        """A teacher cannot re-index another teacher's content."""
        db.add(User(id="teacher-2", display_name="Dr. Grace Hopper", role="teacher"))
        db.commit()
        content = add_content(db, text=sentences("cells", 30))
        resp = client.post(f"/api/content/{content.id}/index", headers=_auth("teacher-2"))
        assert resp.status_code == 403

    def test_admin_reindexes_any_content(self, client, db):
        """An admin can re-index any teacher's content."""
        db.add(User(id="admin-1", display_name="Pat Admin", role="master_admin"))
        db.commit()
        content = add_content(db, text=sentences("cells", 30))
        resp = client.post(f"/api/content/{content.id}/index", headers=_auth("admin-1"))
        assert resp.status_code == 200
        assert resp.json()["chunks_indexed"] >= 1

    def test_unknown_content(self, client):
        """Re-indexing unknown content gets 404."""
        resp = client.post("/api/content/missing/index", headers=_auth("teacher-1"))
        assert resp.status_code == 404


class TestHealth:

    def test_health(self, client):
        """Health endpoint reports ok."""
        assert client.get("/health").json()["status"] == "ok"
