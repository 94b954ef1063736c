"""
LMS Backend - Services Module

Business logic layer.
"""

from lms.services import analytics_service
from lms.services import certificate_service
from lms.services import course_service
from lms.services import enrollment_service
from lms.services import lesson_service
from lms.services import progress_service
from lms.services import user_service

__all__ = [
    "analytics_service",
    "certificate_service",
    "course_service",
    "enrollment_service",
    "lesson_service",
    "progress_service",
    "user_service",
]
