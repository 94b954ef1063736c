"""
Progress Routes

Endpoints for lesson completion, course progress and quiz submissions.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.user import User
from lms.schemas.certificate import CertificateResponse
from lms.schemas.progress import (
    CompletionResponse,
    CourseProgressResponse,
    CourseProgressSummary,
    PortfolioResponse,
    ProgressOverviewResponse,
    ProgressResponse,
    ProgressUpdate,
    QuizResult,
    QuizSubmission,
)
from lms.services import progress_service
from lms.services.progress_service import CompletionResult


router = APIRouter(prefix="/progress", tags=["Progress"])


def _completion_response(result: CompletionResult) -> dict:
    return {
        "progress": ProgressResponse.model_validate(result.progress),
        "course_progress": CourseProgressSummary(
            completed=result.completed_lessons,
            total=result.total_lessons,
            percentage=result.percentage,
        ),
        "certificate": (
            CertificateResponse.model_validate(result.certificate)
            if result.certificate is not None
            else None
        ),
        "certificate_issued": result.certificate_issued,
    }


@router.get(
    "",
    response_model=ProgressOverviewResponse,
    summary="Progress across enrolled courses",
)
async def get_progress_overview(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Get one entry per enrolled course with percentage, lesson counts
    and time spent, plus aggregate stats.
    """
    return await progress_service.get_progress_overview(current_user, db)


@router.get(
    "/portfolio",
    response_model=PortfolioResponse,
    summary="Certificates and learning stats",
)
async def get_portfolio(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await progress_service.get_portfolio(current_user, db)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Progress in one course",
)
async def get_course_progress(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await progress_service.get_course_progress(current_user, course_id, db)


@router.put(
    "/{lesson_id}",
    response_model=CompletionResponse,
    summary="Record lesson progress",
)
async def record_progress(
    lesson_id: int,
    progress_data: ProgressUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CompletionResponse:
    """
    Record progress on a lesson.

    **Rules:**
    - time_spent is added to the stored total
    - QUIZ lessons require quiz_score and complete only at the pass mark
    - A completed lesson stays completed

    When this call completes the lesson and the course crosses the
    certificate threshold, the new certificate is embedded in the
    response and ``certificate_issued`` is true.
    """
    result = await progress_service.record_completion(
        current_user,
        lesson_id,
        db,
        completed=progress_data.completed,
        time_spent=progress_data.time_spent,
        quiz_score=progress_data.quiz_score,
    )
    return CompletionResponse(**_completion_response(result))


@router.post(
    "/{lesson_id}/quiz",
    response_model=QuizResult,
    summary="Submit quiz answers",
)
async def submit_quiz(
    lesson_id: int,
    submission: QuizSubmission,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizResult:
    """
    Grade a quiz on the server and record the attempt.

    The score is the rounded share of correct answers; the lesson is
    completed when it reaches the pass mark.
    """
    result, grading = await progress_service.submit_quiz(
        current_user,
        lesson_id,
        submission.answers,
        db,
        time_spent=submission.time_spent,
    )
    return QuizResult(**_completion_response(result), **grading)
