"""
Completion Math

Course completion counting and percentage rules shared by the progress
tracker, the certificate issuer and the read-side views.
"""

import uuid
from typing import Dict, Iterable, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.lesson import Lesson
from lms.models.progress import Progress


def completion_percentage(completed: int, total: int) -> int:
    """
    Integer percentage rounded half up; 0 for a course without lessons.

    >>> completion_percentage(1, 8)   # 12.5
    13
    >>> completion_percentage(2, 3)   # 66.67
    67
    """
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def exceeds_threshold(completed: int, total: int, threshold: int) -> bool:
    """
    Strict ``completed / total > threshold / 100`` on exact integers.

    The rounded percentage is for display only and is never compared.
    """
    if total <= 0:
        return False
    return completed * 100 > threshold * total


async def count_course_lessons(course_id: int, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Lesson.id)).where(Lesson.course_id == course_id)
    )
    return result.scalar() or 0


async def count_completed_lessons(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> int:
    result = await db.execute(
        select(func.count(Progress.id))
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(
            Progress.user_id == user_id,
            Progress.completed.is_(True),
            Lesson.course_id == course_id,
        )
    )
    return result.scalar() or 0


async def course_completion(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Tuple[int, int]:
    """
    Count completed and total lessons for a (user, course) pair.

    Returns:
        Tuple of (completed_lessons, total_lessons).
    """
    total = await count_course_lessons(course_id, db)
    if total == 0:
        return 0, 0
    completed = await count_completed_lessons(user_id, course_id, db)
    return completed, total


async def lesson_counts(
    course_ids: Iterable[int],
    db: AsyncSession,
) -> Dict[int, int]:
    """Lesson totals for several courses in one query."""
    ids = list(course_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Lesson.course_id, func.count(Lesson.id))
        .where(Lesson.course_id.in_(ids))
        .group_by(Lesson.course_id)
    )
    return {course_id: count for course_id, count in result.all()}


async def completed_counts(
    user_id: uuid.UUID,
    course_ids: Iterable[int],
    db: AsyncSession,
) -> Dict[int, Tuple[int, int]]:
    """
    Completed lesson count and total time spent per course for one user.

    Returns:
        Mapping of course_id to (completed_lessons, time_spent_seconds).
    """
    ids = list(course_ids)
    if not ids:
        return {}
    completed_expr = func.sum(case((Progress.completed.is_(True), 1), else_=0))
    result = await db.execute(
        select(
            Lesson.course_id,
            completed_expr,
            func.coalesce(func.sum(Progress.time_spent), 0),
        )
        .select_from(Progress)
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(Progress.user_id == user_id, Lesson.course_id.in_(ids))
        .group_by(Lesson.course_id)
    )
    return {
        course_id: (int(completed or 0), int(time_spent or 0))
        for course_id, completed, time_spent in result.all()
    }
