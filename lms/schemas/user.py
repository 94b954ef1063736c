"""
User Schemas

Pydantic models for user request/response validation.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from lms.models.enums import UserRole


class UserCreate(BaseModel):
    """Schema for an admin creating a new user."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    full_name: str = Field(..., min_length=1, max_length=255, description="User's full name")
    role: UserRole = Field(default=UserRole.STUDENT, description="User role")


class UserResponse(BaseModel):
    """Schema for user response (excludes password)."""

    id: uuid.UUID
    email: str
    full_name: str
    role: UserRole
    avatar_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""

    id: uuid.UUID
    full_name: str
    email: Optional[str] = None

    model_config = {"from_attributes": True}


class UserRoleUpdate(BaseModel):
    """Schema for an explicit admin role change."""

    role: UserRole


class UserListResponse(BaseModel):
    """Schema for paginated user list."""

    items: List[UserResponse]
    total: int
    page: int
    size: int
    pages: int
