"""Access gate — enrollment checks performed before any retrieval."""

from typing import Protocol

from sqlalchemy.orm import Session

from app.models.course import CourseEnrollment
from app.services.errors import NotEnrolledError


class EnrollmentGate(Protocol):
    def is_enrolled(self, user_id: str, course_id: str) -> bool: ...


class DatabaseEnrollmentGate:
    """Enrollment lookup against the course_enrollments table."""

    def __init__(self, db: Session):
        self.db = db

    def is_enrolled(self, user_id: str, course_id: str) -> bool:
        enrollment = (
            self.db.query(CourseEnrollment.id)
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.course_id == course_id,
            )
            .first()
        )
        return enrollment is not None


def require_enrollment(gate: EnrollmentGate, user_id: str, course_id: str) -> None:
    if not gate.is_enrolled(user_id, course_id):
        raise NotEnrolledError(user_id, course_id)
