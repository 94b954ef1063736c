"""
Progress Service

Business logic for lesson completion, course progress and quiz grading.
Completing a lesson may issue the course certificate as a side effect.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import settings
from lms.core.exceptions import InvalidInputError, LessonNotFoundError
from lms.models.certificate import Certificate
from lms.models.enums import LessonType, ProgressStatus
from lms.models.progress import Progress
from lms.models.user import User
from lms.services.certificate_service import (
    evaluate_and_issue,
    get_certificate,
    list_user_certificates,
)
from lms.services.completion import (
    completed_counts,
    completion_percentage,
    course_completion,
    lesson_counts,
)
from lms.services.course_service import get_course_by_id
from lms.services.enrollment_service import get_user_enrollments, require_enrollment
from lms.services.lesson_service import get_lesson_by_id


logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Outcome of recording progress on one lesson."""

    progress: Progress
    completed_lessons: int
    total_lessons: int
    percentage: int
    certificate: Optional[Certificate] = None
    certificate_issued: bool = False


async def _get_progress(
    user_id: uuid.UUID,
    lesson_id: int,
    db: AsyncSession,
) -> Optional[Progress]:
    result = await db.execute(
        select(Progress)
        .where(Progress.user_id == user_id, Progress.lesson_id == lesson_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _apply_attempt(
    progress: Progress,
    lesson_type: LessonType,
    completed: bool,
    time_spent: int,
    quiz_score: Optional[int],
) -> bool:
    """
    Fold one report into a progress row.

    Returns:
        True if this report moved the lesson to completed.
    """
    progress.time_spent = (progress.time_spent or 0) + time_spent

    passes = completed
    if lesson_type == LessonType.QUIZ:
        # Last attempt wins, even below the pass mark
        progress.quiz_score = quiz_score
        passes = completed and quiz_score >= settings.QUIZ_PASS_THRESHOLD

    if passes and not progress.completed:
        progress.completed = True
        progress.completed_at = datetime.now(timezone.utc)
        return True
    return False


async def record_completion(
    user: User,
    lesson_id: int,
    db: AsyncSession,
    completed: bool = False,
    time_spent: int = 0,
    quiz_score: Optional[int] = None,
) -> CompletionResult:
    """
    Record progress on a lesson for an enrolled user.

    Flow:
    1. Validate input against the lesson type
    2. Upsert the (user, lesson) progress row
    3. Accumulate time, store the quiz attempt, mark completion
    4. On a fresh completion, evaluate the course certificate

    Completion never reverts and ``completed_at`` keeps the time of the
    first completion.

    Args:
        user: Current user.
        lesson_id: Lesson ID.
        db: Database session.
        completed: Whether the client reports the lesson as finished.
        time_spent: Seconds to add to the stored total.
        quiz_score: Attempt score, required for QUIZ lessons only.

    Returns:
        CompletionResult with the row, the course summary and certificate.

    Raises:
        InvalidInputError: On a negative time or a misplaced/invalid score.
        LessonNotFoundError: If the lesson does not exist.
        NotEnrolledError: If the user is not enrolled in the course.
    """
    user_id = user.id

    if time_spent < 0:
        raise InvalidInputError("time_spent must not be negative")
    if quiz_score is not None and not 0 <= quiz_score <= 100:
        raise InvalidInputError("quiz_score must be between 0 and 100")

    lesson = await get_lesson_by_id(lesson_id, db)
    lesson_type = lesson.type
    course_id = lesson.course_id

    if lesson_type == LessonType.QUIZ and quiz_score is None:
        raise InvalidInputError("quiz_score is required for quiz lessons")
    if lesson_type != LessonType.QUIZ and quiz_score is not None:
        raise InvalidInputError("quiz_score is only accepted for quiz lessons")

    await require_enrollment(user_id, course_id, db)

    progress = await _get_progress(user_id, lesson_id, db)
    if progress is None:
        progress = Progress(user_id=user_id, lesson_id=lesson_id, completed=False, time_spent=0)
        db.add(progress)
    flipped = _apply_attempt(progress, lesson_type, completed, time_spent, quiz_score)

    try:
        await db.commit()
    except IntegrityError:
        # A concurrent report created the row first
        await db.rollback()
        progress = await _get_progress(user_id, lesson_id, db)
        if progress is None:
            # Not a duplicate row; the lesson went away underneath us
            raise LessonNotFoundError(lesson_id)
        flipped = _apply_attempt(progress, lesson_type, completed, time_spent, quiz_score)
        await db.commit()

    if flipped:
        logger.info("User %s completed lesson %s", user_id, lesson_id)

    completed_lessons, total_lessons = await course_completion(user_id, course_id, db)

    certificate = await get_certificate(user_id, course_id, db)
    issued = False
    if flipped and certificate is None:
        certificate, issued = await evaluate_and_issue(user_id, course_id, db)

    await db.refresh(progress)

    return CompletionResult(
        progress=progress,
        completed_lessons=completed_lessons,
        total_lessons=total_lessons,
        percentage=completion_percentage(completed_lessons, total_lessons),
        certificate=certificate,
        certificate_issued=issued,
    )


async def get_course_progress(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> Dict[str, Any]:
    """
    Course-level progress with per-lesson completion in lesson order.

    Raises:
        CourseNotFoundError: If the course does not exist.
        NotEnrolledError: If the user is not enrolled.
    """
    course = await get_course_by_id(course_id, db, with_lessons=True)
    await require_enrollment(user.id, course_id, db)

    lesson_ids = [lesson.id for lesson in course.lessons]
    rows: Dict[int, Progress] = {}
    if lesson_ids:
        result = await db.execute(
            select(Progress).where(
                Progress.user_id == user.id,
                Progress.lesson_id.in_(lesson_ids),
            )
        )
        rows = {row.lesson_id: row for row in result.scalars().all()}

    lessons = []
    for lesson in course.lessons:
        row = rows.get(lesson.id)
        lessons.append({
            "lesson_id": lesson.id,
            "title": lesson.title,
            "type": lesson.type,
            "order": lesson.order,
            "status": row.status if row else ProgressStatus.NOT_STARTED,
            "completed": bool(row and row.completed),
            "quiz_score": row.quiz_score if row else None,
        })

    completed = sum(1 for entry in lessons if entry["completed"])
    return {
        "course_id": course_id,
        "total_lessons": len(lessons),
        "completed_lessons": completed,
        "percentage": completion_percentage(completed, len(lessons)),
        "time_spent": sum(row.time_spent for row in rows.values()),
        "lessons": lessons,
    }


async def get_progress_overview(
    user: User,
    db: AsyncSession,
) -> Dict[str, Any]:
    """
    Progress across every enrolled course, plus aggregate stats.

    Args:
        user: Current user.
        db: Database session.

    Returns:
        Dict with ``courses`` entries and ``stats``.
    """
    enrollments = await get_user_enrollments(user, db)
    course_ids = [enrollment.course_id for enrollment in enrollments]

    totals = await lesson_counts(course_ids, db)
    done = await completed_counts(user.id, course_ids, db)

    courses = []
    for enrollment in enrollments:
        total = totals.get(enrollment.course_id, 0)
        completed, time_spent = done.get(enrollment.course_id, (0, 0))
        courses.append({
            "course_id": enrollment.course_id,
            "course_title": enrollment.course.title,
            "enrolled_at": enrollment.enrolled_at,
            "progress": completion_percentage(completed, total),
            "completed_lessons": completed,
            "total_lessons": total,
            "time_spent": time_spent,
            "is_completed": total > 0 and completed == total,
        })

    count = len(courses)
    finished = sum(1 for entry in courses if entry["is_completed"])
    started = sum(1 for entry in courses if entry["progress"] > 0 and not entry["is_completed"])
    progress_sum = sum(entry["progress"] for entry in courses)

    return {
        "courses": courses,
        "stats": {
            "total_courses": count,
            "completed_courses": finished,
            "in_progress_courses": started,
            "total_time_spent": sum(entry["time_spent"] for entry in courses),
            "average_progress": (2 * progress_sum + count) // (2 * count) if count else 0,
        },
    }


async def get_portfolio(
    user: User,
    db: AsyncSession,
) -> Dict[str, Any]:
    """Certificates earned by the user together with lifetime learning stats."""
    certificates = await list_user_certificates(user, db)

    result = await db.execute(
        select(
            func.count(Progress.id).filter(Progress.completed.is_(True)),
            func.coalesce(func.sum(Progress.time_spent), 0),
        ).where(Progress.user_id == user.id)
    )
    lessons_completed, time_spent = result.one()

    return {
        "certificates": certificates,
        "stats": {
            "completed_courses": len(certificates),
            "total_lessons_completed": int(lessons_completed or 0),
            "total_time_spent": int(time_spent or 0),
        },
    }


def grade_quiz(questions: List[Dict[str, Any]], answers: Sequence[int]) -> Tuple[int, int]:
    """
    Count correct answers against each question's ``correct_index``.

    Returns:
        Tuple of (correct_count, score_percentage).
    """
    correct = sum(
        1
        for question, answer in zip(questions, answers)
        if answer == question.get("correct_index")
    )
    return correct, completion_percentage(correct, len(questions))


async def submit_quiz(
    user: User,
    lesson_id: int,
    answers: Sequence[int],
    db: AsyncSession,
    time_spent: int = 0,
) -> Tuple[CompletionResult, Dict[str, Any]]:
    """
    Grade a quiz on the server and record the attempt.

    Args:
        user: Current user.
        lesson_id: QUIZ lesson ID.
        answers: Selected option index per question, in question order.
        db: Database session.
        time_spent: Seconds spent on this attempt.

    Returns:
        Tuple of (CompletionResult, grading dict).

    Raises:
        LessonNotFoundError: If the lesson does not exist.
        InvalidInputError: If the lesson is not a quiz, has no questions,
            or the answer count does not match.
        NotEnrolledError: If the user is not enrolled.
    """
    lesson = await get_lesson_by_id(lesson_id, db)

    if lesson.type != LessonType.QUIZ:
        raise InvalidInputError("This lesson is not a quiz")

    questions = lesson.questions
    if not questions:
        raise InvalidInputError("Quiz has no questions")
    if len(answers) != len(questions):
        raise InvalidInputError(
            f"Expected {len(questions)} answers, got {len(answers)}"
        )

    await require_enrollment(user.id, lesson.course_id, db)

    correct_count, score = grade_quiz(questions, answers)
    passed = score >= settings.QUIZ_PASS_THRESHOLD

    result = await record_completion(
        user,
        lesson_id,
        db,
        completed=True,
        time_spent=time_spent,
        quiz_score=score,
    )

    grading = {
        "score": score,
        "passed": passed,
        "correct_count": correct_count,
        "total_questions": len(questions),
    }
    return result, grading
