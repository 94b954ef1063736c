"""
Enrollment Schemas

Pydantic models for single and batch enrollment.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from lms.models.enums import EnrollmentOutcome


class EnrollmentResponse(BaseModel):
    """Schema for enrollment response."""

    id: int
    user_id: uuid.UUID
    course_id: int
    enrolled_at: datetime

    model_config = {"from_attributes": True}


class BatchEnrollRequest(BaseModel):
    """Schema for enrolling several students at once."""

    user_ids: List[uuid.UUID] = Field(..., min_length=1, max_length=500)


class BatchEnrollItem(BaseModel):
    user_id: uuid.UUID
    outcome: EnrollmentOutcome


class BatchEnrollResponse(BaseModel):
    """Per-user outcomes in request order."""

    course_id: int
    results: List[BatchEnrollItem]
    created: int
    skipped: int
    failed: int


class CourseStudentRow(BaseModel):
    """Enrolled student with their progress in the course."""

    user_id: uuid.UUID
    full_name: str
    email: str
    enrolled_at: datetime
    completed_lessons: int
    total_lessons: int
    progress: int
    has_certificate: bool
