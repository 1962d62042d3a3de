"""Errors raised by the course tutor services and mapped to HTTP codes by routers."""


class CourseTutorError(Exception):
    """Base class for request-fatal course tutor errors."""


class CourseNotFoundError(CourseTutorError, LookupError):
    def __init__(self, course_id: str):
        super().__init__("Course not found")
        self.course_id = course_id


class ContentNotFoundError(CourseTutorError, LookupError):
    def __init__(self, content_id: str):
        super().__init__("Content not found")
        self.content_id = content_id


class SessionNotFoundError(CourseTutorError, LookupError):
    def __init__(self, session_id: str):
        super().__init__("Chat session not found")
        self.session_id = session_id


class NotEnrolledError(CourseTutorError):
    # Generic message: no course details in the error.
    def __init__(self, user_id: str, course_id: str):
        super().__init__("You must be enrolled in this course to use the AI tutor")
        self.user_id = user_id
        self.course_id = course_id
