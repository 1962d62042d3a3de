"""User model — mirror of the platform's identity records."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")  # student | teacher | master_admin
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    taught_courses = relationship("Course", back_populates="instructor")
    enrollments = relationship("CourseEnrollment", back_populates="user")
    chat_sessions = relationship("ChatSession", back_populates="user")
