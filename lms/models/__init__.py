"""
LMS Backend - Models Module

This module exports all SQLAlchemy models for the application.
Import Base for Alembic migrations.
"""

from lms.core.database import Base

# Enums
from lms.models.enums import (
    UserRole,
    LessonType,
    ProgressStatus,
    EnrollmentOutcome,
    Capability,
)

# Models
from lms.models.user import User
from lms.models.course import Course
from lms.models.lesson import Lesson
from lms.models.enrollment import Enrollment
from lms.models.progress import Progress
from lms.models.certificate import Certificate

__all__ = [
    # Base
    "Base",
    # Enums
    "UserRole",
    "LessonType",
    "ProgressStatus",
    "EnrollmentOutcome",
    "Capability",
    # Models
    "User",
    "Course",
    "Lesson",
    "Enrollment",
    "Progress",
    "Certificate",
]
