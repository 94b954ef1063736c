"""
LMS Backend - Schemas Module

Pydantic models for request/response validation.
"""

from lms.schemas.user import UserCreate, UserResponse, UserRoleUpdate, UserSummary
from lms.schemas.token import Token
from lms.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseListResponse,
    CourseDetailResponse,
    LessonCreate,
    LessonUpdate,
    LessonResponse,
    LessonDetailResponse,
)
from lms.schemas.enrollment import (
    EnrollmentResponse,
    BatchEnrollRequest,
    BatchEnrollResponse,
)
from lms.schemas.progress import (
    ProgressUpdate,
    ProgressResponse,
    CourseProgressResponse,
    CompletionResponse,
)
from lms.schemas.certificate import CertificateResponse

__all__ = [
    # User
    "UserCreate",
    "UserResponse",
    "UserRoleUpdate",
    "UserSummary",
    # Token
    "Token",
    # Course
    "CourseCreate",
    "CourseUpdate",
    "CourseResponse",
    "CourseListResponse",
    "CourseDetailResponse",
    "LessonCreate",
    "LessonUpdate",
    "LessonResponse",
    "LessonDetailResponse",
    # Enrollment
    "EnrollmentResponse",
    "BatchEnrollRequest",
    "BatchEnrollResponse",
    # Progress
    "ProgressUpdate",
    "ProgressResponse",
    "CourseProgressResponse",
    "CompletionResponse",
    # Certificate
    "CertificateResponse",
]
