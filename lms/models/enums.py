"""
Database Enums

Python Enums that map to database ENUM types.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class LessonType(str, enum.Enum):
    """Lesson type enumeration."""
    VIDEO = "VIDEO"
    TEXT = "TEXT"
    QUIZ = "QUIZ"


class ProgressStatus(str, enum.Enum):
    """Derived per-lesson progress state (not stored)."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class EnrollmentOutcome(str, enum.Enum):
    """Per-user result of a batch enrollment."""
    CREATED = "created"
    SKIPPED_ALREADY_ENROLLED = "skipped_already_enrolled"
    FAILED_INVALID_USER = "failed_invalid_user"


class Capability(str, enum.Enum):
    """What an actor may be with respect to a resource."""
    SELF = "SELF"
    TEACHER_OWNER = "TEACHER_OWNER"
    ADMIN = "ADMIN"
