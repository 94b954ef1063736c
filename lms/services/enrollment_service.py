"""
Enrollment Service

Self-service and batch enrollment, removal, and roster queries.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lms.core.exceptions import (
    AlreadyEnrolledError,
    CourseNotPublishedError,
    NotEnrolledError,
)
from lms.models.certificate import Certificate
from lms.models.enrollment import Enrollment
from lms.models.enums import Capability, EnrollmentOutcome, UserRole
from lms.models.lesson import Lesson
from lms.models.progress import Progress
from lms.models.user import User
from lms.services.completion import completion_percentage, count_course_lessons
from lms.services.course_service import get_course_by_id
from lms.services.permissions import can_manage_course, require_capability


logger = logging.getLogger(__name__)

MANAGE = (Capability.ADMIN, Capability.TEACHER_OWNER)


async def get_enrollment(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


async def require_enrollment(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Enrollment:
    """
    Raises:
        NotEnrolledError: If the user has no enrollment in the course.
    """
    enrollment = await get_enrollment(user_id, course_id, db)
    if enrollment is None:
        raise NotEnrolledError()
    return enrollment


async def _insert_enrollment(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[Enrollment]:
    """
    Insert and commit one enrollment.

    Returns None when the unique constraint rejects the row, i.e. the
    pair was enrolled concurrently.
    """
    enrollment = Enrollment(user_id=user_id, course_id=course_id)
    db.add(enrollment)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            "Enrollment of user %s in course %s lost to a concurrent request",
            user_id,
            course_id,
        )
        return None
    await db.refresh(enrollment)
    return enrollment


async def enroll(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> Enrollment:
    """
    Enroll the current user in a course.

    Args:
        user: User enrolling themselves.
        course_id: Course ID.
        db: Database session.

    Returns:
        Created Enrollment.

    Raises:
        CourseNotFoundError: If the course does not exist.
        CourseNotPublishedError: If the course is a draft the user cannot manage.
        AlreadyEnrolledError: If the pair already exists, including a lost race.
    """
    user_id = user.id
    course = await get_course_by_id(course_id, db)

    if not course.is_published and not can_manage_course(user, course):
        raise CourseNotPublishedError()

    if await get_enrollment(user_id, course_id, db) is not None:
        raise AlreadyEnrolledError()

    enrollment = await _insert_enrollment(user_id, course_id, db)
    if enrollment is None:
        raise AlreadyEnrolledError()

    logger.info("User %s enrolled in course %s", user_id, course_id)
    return enrollment


async def batch_enroll(
    actor: User,
    course_id: int,
    user_ids: Sequence[uuid.UUID],
    db: AsyncSession,
) -> List[Tuple[uuid.UUID, EnrollmentOutcome]]:
    """
    Enroll several users on behalf of the course owner or an admin.

    Per-user problems never fail the batch. Duplicate ids collapse to
    their first occurrence.

    Returns:
        (user_id, outcome) pairs in input order.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: If the actor is neither admin nor owning teacher.
    """
    course = await get_course_by_id(course_id, db)
    require_capability(
        actor,
        MANAGE,
        course=course,
        message="Only the course owner or an admin can enroll students",
    )

    ordered = list(dict.fromkeys(user_ids))
    if not ordered:
        return []

    known = set(
        (await db.execute(select(User.id).where(User.id.in_(ordered)))).scalars().all()
    )
    enrolled = set(
        (
            await db.execute(
                select(Enrollment.user_id).where(
                    Enrollment.course_id == course_id,
                    Enrollment.user_id.in_(ordered),
                )
            )
        ).scalars().all()
    )

    outcomes: List[Tuple[uuid.UUID, EnrollmentOutcome]] = []
    for user_id in ordered:
        if user_id not in known:
            outcomes.append((user_id, EnrollmentOutcome.FAILED_INVALID_USER))
        elif user_id in enrolled:
            outcomes.append((user_id, EnrollmentOutcome.SKIPPED_ALREADY_ENROLLED))
        elif await _insert_enrollment(user_id, course_id, db) is None:
            outcomes.append((user_id, EnrollmentOutcome.SKIPPED_ALREADY_ENROLLED))
        else:
            outcomes.append((user_id, EnrollmentOutcome.CREATED))

    created = sum(1 for _, outcome in outcomes if outcome == EnrollmentOutcome.CREATED)
    logger.info(
        "Batch enrollment in course %s: %s created of %s requested",
        course_id,
        created,
        len(ordered),
    )
    return outcomes


async def unenroll(
    actor: User,
    course_id: int,
    user_id: uuid.UUID,
    db: AsyncSession,
) -> None:
    """
    Remove a user from a course.

    The user's progress on the course's lessons is deleted in the same
    transaction; a later re-enrollment starts from zero. Certificates
    already issued are kept.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: Unless the actor is the user, the owner or an admin.
        NotEnrolledError: If the user is not enrolled.
    """
    course = await get_course_by_id(course_id, db)
    require_capability(
        actor,
        (Capability.SELF,) + MANAGE,
        course=course,
        subject_id=user_id,
    )

    enrollment = await require_enrollment(user_id, course_id, db)

    lesson_ids = select(Lesson.id).where(Lesson.course_id == course_id)
    removed = await db.execute(
        delete(Progress)
        .where(Progress.user_id == user_id, Progress.lesson_id.in_(lesson_ids))
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(enrollment)
    await db.commit()

    logger.info(
        "User %s removed from course %s (%s progress rows deleted)",
        user_id,
        course_id,
        removed.rowcount,
    )


async def list_course_students(
    actor: User,
    course_id: int,
    db: AsyncSession,
) -> List[Dict[str, Any]]:
    """
    Enrolled students of a course with their completion.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: If the actor is neither admin nor owning teacher.
    """
    course = await get_course_by_id(course_id, db)
    require_capability(actor, MANAGE, course=course)

    total = await count_course_lessons(course_id, db)

    result = await db.execute(
        select(Enrollment, User)
        .join(User, User.id == Enrollment.user_id)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    rows = result.all()

    completed_result = await db.execute(
        select(
            Progress.user_id,
            func.sum(case((Progress.completed.is_(True), 1), else_=0)),
        )
        .select_from(Progress)
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(Lesson.course_id == course_id)
        .group_by(Progress.user_id)
    )
    completed_by_user = {uid: int(n or 0) for uid, n in completed_result.all()}

    certified = set(
        (
            await db.execute(
                select(Certificate.user_id).where(Certificate.course_id == course_id)
            )
        ).scalars().all()
    )

    students = []
    for enrollment, student in rows:
        completed = completed_by_user.get(student.id, 0)
        students.append({
            "user_id": student.id,
            "full_name": student.full_name,
            "email": student.email,
            "enrolled_at": enrollment.enrolled_at,
            "completed_lessons": completed,
            "total_lessons": total,
            "progress": completion_percentage(completed, total),
            "has_certificate": student.id in certified,
        })
    return students


async def list_enrollable_users(
    actor: User,
    course_id: int,
    db: AsyncSession,
    search: Optional[str] = None,
    limit: int = 50,
) -> List[User]:
    """Students not yet enrolled in the course, optionally filtered by name or email."""
    course = await get_course_by_id(course_id, db)
    require_capability(actor, MANAGE, course=course)

    enrolled_ids = select(Enrollment.user_id).where(Enrollment.course_id == course_id)
    query = select(User).where(
        User.role == UserRole.STUDENT,
        User.id.not_in(enrolled_ids),
    )
    if search:
        search_term = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(User.full_name).like(search_term),
                func.lower(User.email).like(search_term),
            )
        )

    result = await db.execute(query.order_by(User.full_name).limit(limit))
    return list(result.scalars().all())


async def get_user_enrollments(
    user: User,
    db: AsyncSession,
) -> List[Enrollment]:
    """All enrollments of a user with their course loaded, newest first."""
    result = await db.execute(
        select(Enrollment)
        .options(selectinload(Enrollment.course))
        .where(Enrollment.user_id == user.id)
        .order_by(Enrollment.enrolled_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
