"""FastAPI dependencies for the injected AI capability and the enrollment gate."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.access import DatabaseEnrollmentGate, EnrollmentGate
from app.services.ai_client import AIClient


def get_ai_client(request: Request) -> AIClient:
    """The AIClient built once at startup (see app.main)."""
    return request.app.state.ai


def get_enrollment_gate(db: Session = Depends(get_db)) -> EnrollmentGate:
    return DatabaseEnrollmentGate(db)
