"""
Certificate Schemas

Pydantic models for certificate responses.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CertificateCourse(BaseModel):
    id: int
    title: str
    category: str
    duration: str

    model_config = {"from_attributes": True}


class CertificateResponse(BaseModel):
    """Schema for certificate response."""

    id: int
    user_id: uuid.UUID
    course_id: int
    code: str
    issued_at: datetime
    summary: Optional[str] = None
    course: Optional[CertificateCourse] = None

    model_config = {"from_attributes": True}


class CertificateVerification(BaseModel):
    """Public verification result for a certificate code."""

    valid: bool
    code: str
    student_name: str
    course_title: str
    issued_at: datetime
