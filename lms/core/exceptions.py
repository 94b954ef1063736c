"""
Domain Exceptions

Error kinds raised by the service layer. Each one is an HTTPException so
routes don't need to translate them, and carries a stable ``code`` the
client uses to pick a message.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class LMSError(HTTPException):
    """Base exception for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail=message or self.message,
        )


# ============== Not Found ==============

class NotFoundError(LMSError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"


class CourseNotFoundError(NotFoundError):
    message = "Course not found"

    def __init__(self, course_id: int):
        super().__init__(f"Course {course_id} not found", course_id=course_id)


class LessonNotFoundError(NotFoundError):
    message = "Lesson not found"

    def __init__(self, lesson_id: int):
        super().__init__(f"Lesson {lesson_id} not found", lesson_id=lesson_id)


class UserNotFoundError(NotFoundError):
    message = "User not found"


class CertificateNotFoundError(NotFoundError):
    message = "Certificate not found"


# ============== Access ==============

class NotEnrolledError(LMSError):
    """Operation requires an enrollment that is absent."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "not_enrolled"
    message = "You are not enrolled in this course"


class AlreadyEnrolledError(LMSError):
    """Duplicate enrollment attempt."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_enrolled"
    message = "Already enrolled in this course"


class ForbiddenError(LMSError):
    """Actor lacks the role or ownership required."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You do not have permission to perform this action"


class CourseNotPublishedError(ForbiddenError):
    code = "course_not_published"
    message = "Course is not published"


# ============== Input / State ==============

class InvalidInputError(LMSError):
    """Malformed input rejected before any mutation."""

    status_code = 422
    code = "validation_error"
    message = "Invalid input"


class CourseHasNoLessonsError(LMSError):
    code = "course_has_no_lessons"
    message = "Course has no lessons"


class CertificateNotEarnedError(LMSError):
    code = "certificate_not_earned"
    message = "Completion threshold for a certificate has not been reached"


class CourseInUseError(LMSError):
    status_code = status.HTTP_409_CONFLICT
    code = "course_in_use"
    message = "Course has enrollments or certificates and cannot be deleted"


class DuplicateCertificateError(LMSError):
    """
    A concurrent request already issued the certificate.

    Internal to the certificate issuer; never reaches a client.
    """

    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_certificate"
    message = "Certificate already issued"
