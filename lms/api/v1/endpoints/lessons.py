"""
Lesson Routes

Endpoints for lesson authoring and the learner lesson view.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.user import User
from lms.schemas.course import (
    LessonCreate,
    LessonDetailResponse,
    LessonResponse,
    LessonUpdate,
)
from lms.services import lesson_service


router = APIRouter(prefix="/lessons", tags=["Lessons"])


@router.post(
    "",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lesson to a course",
)
async def create_lesson(
    lesson_data: LessonCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Add a VIDEO, TEXT or QUIZ lesson.

    **Requirements:**
    - User must own the course or be an admin
    - Exactly the payload matching the type: video_url, content or quiz_data
    """
    return await lesson_service.create_lesson(current_user, lesson_data, db)


@router.get(
    "/{lesson_id}",
    response_model=LessonDetailResponse,
    summary="Get a lesson",
)
async def get_lesson(
    lesson_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Get a lesson with the caller's progress and previous/next navigation.

    Learners must be enrolled. Quiz answers are only included for the
    course owner and admins.
    """
    return await lesson_service.get_lesson(current_user, lesson_id, db)


@router.put(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Update a lesson",
)
async def update_lesson(
    lesson_id: int,
    lesson_data: LessonUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await lesson_service.update_lesson(current_user, lesson_id, lesson_data, db)


@router.delete(
    "/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a lesson",
)
async def delete_lesson(
    lesson_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await lesson_service.delete_lesson(current_user, lesson_id, db)
