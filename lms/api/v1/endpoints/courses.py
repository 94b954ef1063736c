"""
Course Routes

Endpoints for the course catalog, authoring, enrollment and rosters.
"""

import uuid
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.user import User
from lms.models.enums import EnrollmentOutcome
from lms.schemas.course import (
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    LessonReorder,
    LessonResponse,
)
from lms.schemas.enrollment import (
    BatchEnrollItem,
    BatchEnrollRequest,
    BatchEnrollResponse,
    CourseStudentRow,
    EnrollmentResponse,
)
from lms.schemas.user import UserSummary
from lms.services import course_service, enrollment_service, lesson_service


router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get(
    "",
    response_model=CourseListResponse,
    summary="List courses",
)
async def list_courses(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(10, ge=1, le=100, description="Items per page"),
    category: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search by title or description"),
    enrolled: Optional[bool] = Query(None, description="Only enrolled (true) or not enrolled (false)"),
) -> CourseListResponse:
    """
    Get a paginated catalog page.

    Students see published courses, teachers the courses they own and
    admins every course. Each item carries counts and the caller's
    completion percentage.
    """
    items, total = await course_service.list_courses(
        current_user,
        db,
        page=page,
        size=size,
        category=category,
        search=search,
        enrolled=enrolled,
    )

    pages = (total + size - 1) // size  # Ceiling division

    return CourseListResponse(
        items=items,
        total=total,
        page=page,
        size=size,
        pages=pages,
    )


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
async def create_course(
    course_data: CourseCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create a new course owned by the current user.

    **Requirements:**
    - User must be a TEACHER or ADMIN
    """
    return await course_service.create_course(current_user, course_data, db)


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course details",
)
async def get_course(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Get a course with its ordered lessons and the caller's progress.

    Drafts are only visible to their owner and admins.
    """
    return await course_service.get_course_detail(current_user, course_id, db)


@router.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update a course",
)
async def update_course(
    course_id: int,
    course_data: CourseUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await course_service.update_course(current_user, course_id, course_data, db)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a course",
)
async def delete_course(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """
    Delete a course and its lessons.

    Rejected with 409 while students are enrolled or certificates exist.
    """
    await course_service.delete_course(current_user, course_id, db)


# ============== Enrollment ==============

@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Enroll the current user.

    Returns 409 ``already_enrolled`` when the enrollment exists.
    """
    return await enrollment_service.enroll(current_user, course_id, db)


@router.delete(
    "/{course_id}/enroll",
    summary="Leave a course",
)
async def unenroll_self(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Remove the current user's enrollment and their progress in the course.
    """
    user_id = current_user.id
    await enrollment_service.unenroll(current_user, course_id, user_id, db)
    return {"message": "Unenrolled", "course_id": course_id, "user_id": str(user_id)}


@router.get(
    "/{course_id}/students",
    response_model=List[CourseStudentRow],
    summary="List enrolled students",
)
async def list_students(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await enrollment_service.list_course_students(current_user, course_id, db)


@router.post(
    "/{course_id}/students",
    response_model=BatchEnrollResponse,
    summary="Enroll several students",
)
async def batch_enroll(
    course_id: int,
    request: BatchEnrollRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BatchEnrollResponse:
    """
    Enroll a list of users on behalf of the course owner or an admin.

    Every id gets an outcome; ids that are already enrolled or unknown
    never fail the rest of the batch.
    """
    outcomes = await enrollment_service.batch_enroll(
        current_user, course_id, request.user_ids, db
    )

    def count(outcome: EnrollmentOutcome) -> int:
        return sum(1 for _, o in outcomes if o == outcome)

    return BatchEnrollResponse(
        course_id=course_id,
        results=[BatchEnrollItem(user_id=uid, outcome=o) for uid, o in outcomes],
        created=count(EnrollmentOutcome.CREATED),
        skipped=count(EnrollmentOutcome.SKIPPED_ALREADY_ENROLLED),
        failed=count(EnrollmentOutcome.FAILED_INVALID_USER),
    )


@router.delete(
    "/{course_id}/students/{user_id}",
    summary="Remove a student from a course",
)
async def remove_student(
    course_id: int,
    user_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    await enrollment_service.unenroll(current_user, course_id, user_id, db)
    return {"message": "Student removed", "course_id": course_id, "user_id": str(user_id)}


@router.get(
    "/{course_id}/enrollable-users",
    response_model=List[UserSummary],
    summary="Students who can still be enrolled",
)
async def list_enrollable_users(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    search: Optional[str] = Query(None, description="Search by name or email"),
):
    return await enrollment_service.list_enrollable_users(
        current_user, course_id, db, search=search
    )


# ============== Lessons ==============

@router.put(
    "/{course_id}/lessons/order",
    response_model=List[LessonResponse],
    summary="Reorder lessons",
)
async def reorder_lessons(
    course_id: int,
    reorder: LessonReorder,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await lesson_service.reorder_lessons(current_user, course_id, reorder, db)
