"""
Progress Schemas

Pydantic models for lesson progress tracking and quiz submissions.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from lms.models.enums import LessonType, ProgressStatus
from lms.schemas.certificate import CertificateResponse


class ProgressUpdate(BaseModel):
    """Schema for reporting progress on a lesson."""

    completed: bool = Field(default=False, description="Mark the lesson as completed")
    time_spent: int = Field(default=0, ge=0, description="Seconds spent since the last report")
    quiz_score: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="Quiz score percentage (QUIZ lessons only)",
    )


class QuizSubmission(BaseModel):
    """Schema for quiz answer submission, graded on the server."""

    answers: List[int] = Field(
        ...,
        description="Selected option index per question, in question order",
    )
    time_spent: int = Field(default=0, ge=0)


class ProgressResponse(BaseModel):
    """Schema for a single progress row."""

    lesson_id: int
    status: ProgressStatus
    completed: bool
    completed_at: Optional[datetime] = None
    time_spent: int
    quiz_score: Optional[int] = None

    model_config = {"from_attributes": True}


class LessonProgressEntry(BaseModel):
    """Per-lesson entry within a course progress summary."""

    lesson_id: int
    title: str
    type: LessonType
    order: int
    status: ProgressStatus
    completed: bool
    quiz_score: Optional[int] = None


class CourseProgressResponse(BaseModel):
    """Course-level progress for one student."""

    course_id: int
    total_lessons: int
    completed_lessons: int
    percentage: int
    time_spent: int = 0
    lessons: List[LessonProgressEntry] = []


class CourseProgressSummary(BaseModel):
    completed: int
    total: int
    percentage: int


class CompletionResponse(BaseModel):
    """Result of recording progress on a lesson."""

    progress: ProgressResponse
    course_progress: CourseProgressSummary
    certificate: Optional[CertificateResponse] = None
    certificate_issued: bool = False


class QuizResult(CompletionResponse):
    """Result of a graded quiz attempt."""

    score: int
    passed: bool
    correct_count: int
    total_questions: int


class CourseOverviewEntry(BaseModel):
    course_id: int
    course_title: str
    enrolled_at: datetime
    progress: int
    completed_lessons: int
    total_lessons: int
    time_spent: int
    is_completed: bool


class ProgressStats(BaseModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    total_time_spent: int
    average_progress: int


class ProgressOverviewResponse(BaseModel):
    """Progress across all enrolled courses."""

    courses: List[CourseOverviewEntry]
    stats: ProgressStats


class PortfolioStats(BaseModel):
    completed_courses: int
    total_lessons_completed: int
    total_time_spent: int


class PortfolioResponse(BaseModel):
    certificates: List[CertificateResponse]
    stats: PortfolioStats
