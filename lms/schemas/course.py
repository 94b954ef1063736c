"""
Course Schemas

Pydantic models for course and lesson request/response validation.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from lms.models.enums import LessonType
from lms.schemas.user import UserSummary


# ============== Quiz Schemas ==============

class QuizQuestion(BaseModel):
    """A single multiple-choice question."""

    id: Optional[int] = None
    text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    correct_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_correct_index(self) -> "QuizQuestion":
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index must point at one of the options")
        return self


class QuizData(BaseModel):
    """Structured quiz document stored on QUIZ lessons."""

    questions: List[QuizQuestion] = Field(..., min_length=1)


# ============== Lesson Schemas ==============

def check_lesson_payload(
    lesson_type: LessonType,
    video_url: Optional[str],
    content: Optional[str],
    quiz_data: Any,
) -> None:
    """
    Enforce that exactly the payload matching the lesson type is set.

    Raises:
        ValueError: If the payload is missing or a foreign one is present.
    """
    populated = {
        LessonType.VIDEO: video_url,
        LessonType.TEXT: content,
        LessonType.QUIZ: quiz_data,
    }
    if populated[lesson_type] is None:
        raise ValueError(f"{lesson_type.value} lesson requires its payload")
    extra = [t.value for t, v in populated.items() if t != lesson_type and v is not None]
    if extra:
        raise ValueError(f"{lesson_type.value} lesson cannot carry {', '.join(extra)} payload")


class LessonCreate(BaseModel):
    """Schema for creating a lesson: type plus exactly one matching payload."""

    course_id: int
    title: str = Field(..., min_length=1, max_length=500)
    type: LessonType
    order: Optional[int] = Field(default=None, ge=1, description="Defaults to last + 1")
    video_url: Optional[str] = None
    content: Optional[str] = None
    quiz_data: Optional[QuizData] = None

    @model_validator(mode="after")
    def check_payload(self) -> "LessonCreate":
        check_lesson_payload(self.type, self.video_url, self.content, self.quiz_data)
        return self


class LessonUpdate(BaseModel):
    """
    Schema for updating a lesson.

    The payload is replaced as a whole: send ``type`` together with
    its payload field, or neither.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    order: Optional[int] = Field(default=None, ge=1)
    type: Optional[LessonType] = None
    video_url: Optional[str] = None
    content: Optional[str] = None
    quiz_data: Optional[QuizData] = None

    @model_validator(mode="after")
    def check_payload(self) -> "LessonUpdate":
        if self.type is None:
            if any(v is not None for v in (self.video_url, self.content, self.quiz_data)):
                raise ValueError("type is required when changing the lesson payload")
        else:
            check_lesson_payload(self.type, self.video_url, self.content, self.quiz_data)
        return self


class LessonOrderItem(BaseModel):
    id: int
    order: int = Field(..., ge=1)


class LessonReorder(BaseModel):
    """Schema for reordering lessons of a course."""

    lesson_orders: List[LessonOrderItem] = Field(..., min_length=1)


class LessonSummary(BaseModel):
    """Lesson reference used in course detail and navigation."""

    id: int
    title: str
    type: LessonType
    order: int

    model_config = {"from_attributes": True}


class LessonResponse(LessonSummary):
    """Full lesson, including payload."""

    course_id: int
    video_url: Optional[str] = None
    content: Optional[str] = None
    quiz_data: Optional[Dict[str, Any]] = None


class LessonNavigation(BaseModel):
    prev: Optional[LessonSummary] = None
    next: Optional[LessonSummary] = None
    current: int
    total: int


class LessonDetailResponse(LessonResponse):
    """Lesson as seen by a learner, with their progress."""

    completed: bool = False
    time_spent: int = 0
    quiz_score: Optional[int] = None
    navigation: LessonNavigation


# ============== Course Schemas ==============

class CourseCreate(BaseModel):
    """Schema for creating a new course."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    duration: str = Field(default="30 min", max_length=50)
    icon: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: bool = False


class CourseUpdate(BaseModel):
    """Schema for updating a course. Only provided fields change."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    duration: Optional[str] = Field(default=None, max_length=50)
    icon: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: Optional[bool] = None


class CourseResponse(BaseModel):
    """Schema for a course without learner context."""

    id: int
    title: str
    description: Optional[str] = None
    category: str
    duration: str
    icon: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: bool
    teacher_id: uuid.UUID
    teacher: Optional[UserSummary] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CourseListItem(CourseResponse):
    """Catalog entry with aggregate counts and the caller's progress."""

    lesson_count: int = 0
    enrollment_count: int = 0
    is_enrolled: bool = False
    progress: int = 0


class CourseListResponse(BaseModel):
    """Schema for paginated course list."""

    items: List[CourseListItem]
    total: int
    page: int
    size: int
    pages: int


class CourseLessonEntry(LessonSummary):
    completed: bool = False


class CourseDetailResponse(CourseListItem):
    """Course detail with ordered lessons and per-lesson completion."""

    lessons: List[CourseLessonEntry] = []
