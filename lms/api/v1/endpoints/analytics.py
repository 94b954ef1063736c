"""
Analytics Routes

Endpoints for teacher analytics.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.user import User
from lms.schemas.analytics import CourseAnalyticsResponse
from lms.services import analytics_service


router = APIRouter(prefix="/courses", tags=["Analytics"])


@router.get(
    "/{course_id}/analytics",
    response_model=CourseAnalyticsResponse,
    summary="Get course student analytics",
)
async def get_course_analytics(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CourseAnalyticsResponse:
    """
    Get detailed analytics for a course.

    **Auth:** Only the owning teacher or an admin can access this.

    **Returns:**
    - Students enrolled
    - Progress percentage per student
    - Average quiz scores
    - Certificate status

    Args:
        course_id: Course ID.
        current_user: Authenticated teacher or admin.
        db: Database session.
    """
    return await analytics_service.get_course_analytics(
        actor=current_user,
        course_id=course_id,
        db=db,
    )
