"""
Course Service

Business logic for the course catalog: listing, detail views and
authoring by teachers and admins.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lms.core.exceptions import (
    CourseInUseError,
    CourseNotFoundError,
    CourseNotPublishedError,
)
from lms.models.certificate import Certificate
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import Capability, UserRole
from lms.models.lesson import Lesson
from lms.models.progress import Progress
from lms.models.user import User
from lms.schemas.course import CourseCreate, CourseUpdate
from lms.services.completion import (
    completed_counts,
    completion_percentage,
    lesson_counts,
)
from lms.services.permissions import (
    can_manage_course,
    require_author,
    require_capability,
)


logger = logging.getLogger(__name__)


async def get_course_by_id(
    course_id: int,
    db: AsyncSession,
    with_lessons: bool = False,
) -> Course:
    """
    Get a specific course by ID, teacher loaded.

    Args:
        course_id: Course ID.
        db: Database session.
        with_lessons: Also load the ordered lessons.

    Returns:
        Course object.

    Raises:
        CourseNotFoundError: If the course does not exist.
    """
    query = select(Course).where(Course.id == course_id)
    if with_lessons:
        query = query.options(selectinload(Course.lessons))
    result = await db.execute(query.execution_options(populate_existing=True))
    course = result.scalar_one_or_none()

    if course is None:
        raise CourseNotFoundError(course_id)

    return course


def _course_fields(course: Course) -> Dict[str, Any]:
    teacher = None
    if course.teacher is not None:
        teacher = {
            "id": course.teacher.id,
            "full_name": course.teacher.full_name,
            "email": course.teacher.email,
        }
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "category": course.category,
        "duration": course.duration,
        "icon": course.icon,
        "cover_image": course.cover_image,
        "is_published": course.is_published,
        "teacher_id": course.teacher_id,
        "teacher": teacher,
        "created_at": course.created_at,
    }


async def _enrollment_counts(course_ids: List[int], db: AsyncSession) -> Dict[int, int]:
    if not course_ids:
        return {}
    result = await db.execute(
        select(Enrollment.course_id, func.count(Enrollment.id))
        .where(Enrollment.course_id.in_(course_ids))
        .group_by(Enrollment.course_id)
    )
    return {course_id: count for course_id, count in result.all()}


async def list_courses(
    user: User,
    db: AsyncSession,
    page: int = 1,
    size: int = 10,
    category: Optional[str] = None,
    search: Optional[str] = None,
    enrolled: Optional[bool] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Get a paginated catalog page as seen by ``user``.

    Students see published courses, teachers their own, admins everything.

    Args:
        user: Current user.
        db: Database session.
        page: Page number (1-indexed).
        size: Items per page.
        category: Optional exact category filter.
        search: Optional search term for title or description.
        enrolled: True for only enrolled courses, False for only the others.

    Returns:
        Tuple of (catalog items, total_count).
    """
    base_query = select(Course)

    if user.role == UserRole.STUDENT:
        base_query = base_query.where(Course.is_published.is_(True))
    elif user.role == UserRole.TEACHER:
        base_query = base_query.where(Course.teacher_id == user.id)

    if category:
        base_query = base_query.where(Course.category == category)

    if search:
        search_term = f"%{search.lower()}%"
        base_query = base_query.where(
            or_(
                func.lower(Course.title).like(search_term),
                func.lower(Course.description).like(search_term),
            )
        )

    my_courses = select(Enrollment.course_id).where(Enrollment.user_id == user.id)
    if enrolled is True:
        base_query = base_query.where(Course.id.in_(my_courses))
    elif enrolled is False:
        base_query = base_query.where(Course.id.not_in(my_courses))

    count_result = await db.execute(
        select(func.count()).select_from(base_query.subquery())
    )
    total = count_result.scalar() or 0

    offset = (page - 1) * size
    result = await db.execute(
        base_query
        .order_by(Course.created_at.desc(), Course.id.desc())
        .offset(offset)
        .limit(size)
    )
    courses = list(result.scalars().all())

    ids = [course.id for course in courses]
    lessons = await lesson_counts(ids, db)
    enrollments = await _enrollment_counts(ids, db)
    progress = await completed_counts(user.id, ids, db)
    enrolled_ids = set()
    if ids:
        result = await db.execute(
            select(Enrollment.course_id).where(
                Enrollment.user_id == user.id,
                Enrollment.course_id.in_(ids),
            )
        )
        enrolled_ids = set(result.scalars().all())

    items = []
    for course in courses:
        total_lessons = lessons.get(course.id, 0)
        completed, _ = progress.get(course.id, (0, 0))
        items.append({
            **_course_fields(course),
            "lesson_count": total_lessons,
            "enrollment_count": enrollments.get(course.id, 0),
            "is_enrolled": course.id in enrolled_ids,
            "progress": completion_percentage(completed, total_lessons),
        })

    return items, total


async def get_course_detail(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> Dict[str, Any]:
    """
    Course with ordered lessons and the caller's per-lesson completion.

    Raises:
        CourseNotFoundError: If the course does not exist.
        CourseNotPublishedError: If a draft is requested by someone who
            cannot manage it.
    """
    course = await get_course_by_id(course_id, db, with_lessons=True)

    if not course.is_published and not can_manage_course(user, course):
        raise CourseNotPublishedError()

    lesson_ids = [lesson.id for lesson in course.lessons]
    done = set()
    if lesson_ids:
        result = await db.execute(
            select(Progress.lesson_id).where(
                Progress.user_id == user.id,
                Progress.lesson_id.in_(lesson_ids),
                Progress.completed.is_(True),
            )
        )
        done = set(result.scalars().all())

    enrollment = await db.execute(
        select(Enrollment.id).where(
            Enrollment.user_id == user.id,
            Enrollment.course_id == course_id,
        )
    )
    enrollments = await _enrollment_counts([course_id], db)

    return {
        **_course_fields(course),
        "lesson_count": len(lesson_ids),
        "enrollment_count": enrollments.get(course_id, 0),
        "is_enrolled": enrollment.scalar_one_or_none() is not None,
        "progress": completion_percentage(len(done), len(lesson_ids)),
        "lessons": [
            {
                "id": lesson.id,
                "title": lesson.title,
                "type": lesson.type,
                "order": lesson.order,
                "completed": lesson.id in done,
            }
            for lesson in course.lessons
        ],
    }


async def create_course(
    user: User,
    data: CourseCreate,
    db: AsyncSession,
) -> Course:
    """
    Create a course owned by the current user.

    Raises:
        ForbiddenError: If the user is a student.
    """
    require_author(user)

    course = Course(teacher_id=user.id, **data.model_dump())
    db.add(course)
    await db.commit()

    logger.info("Course %s created by %s", course.id, user.id)
    return await get_course_by_id(course.id, db)


async def update_course(
    user: User,
    course_id: int,
    data: CourseUpdate,
    db: AsyncSession,
) -> Course:
    """
    Update provided fields of a course.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
    """
    course = await get_course_by_id(course_id, db)
    require_capability(
        user,
        (Capability.ADMIN, Capability.TEACHER_OWNER),
        course=course,
        message="You can only edit your own courses",
    )

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(course, field, value)

    await db.commit()
    return await get_course_by_id(course_id, db)


async def delete_course(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> None:
    """
    Delete a course and its lessons.

    Rejected while enrollments or certificates reference the course.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
        CourseInUseError: If the course still has enrollments or certificates.
    """
    course = await get_course_by_id(course_id, db)
    require_capability(
        user,
        (Capability.ADMIN, Capability.TEACHER_OWNER),
        course=course,
        message="You can only delete your own courses",
    )

    enrollment_count = (
        await db.execute(
            select(func.count(Enrollment.id)).where(Enrollment.course_id == course_id)
        )
    ).scalar() or 0
    certificate_count = (
        await db.execute(
            select(func.count(Certificate.id)).where(Certificate.course_id == course_id)
        )
    ).scalar() or 0
    if enrollment_count or certificate_count:
        raise CourseInUseError(
            enrollments=enrollment_count,
            certificates=certificate_count,
        )

    lesson_ids = select(Lesson.id).where(Lesson.course_id == course_id)
    await db.execute(
        delete(Progress)
        .where(Progress.lesson_id.in_(lesson_ids))
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        delete(Lesson)
        .where(Lesson.course_id == course_id)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(delete(Course).where(Course.id == course_id))
    await db.commit()

    logger.info("Course %s deleted by %s", course_id, user.id)
