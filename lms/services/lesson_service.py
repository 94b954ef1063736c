"""
Lesson Service

Lesson authoring, learner lesson views with navigation, and reordering.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.exceptions import InvalidInputError, LessonNotFoundError
from lms.models.course import Course
from lms.models.enums import Capability, LessonType
from lms.models.lesson import Lesson
from lms.models.progress import Progress
from lms.models.user import User
from lms.schemas.course import LessonCreate, LessonReorder, LessonUpdate, QuizData
from lms.services.course_service import get_course_by_id
from lms.services.enrollment_service import require_enrollment
from lms.services.permissions import can_manage_course, require_capability


logger = logging.getLogger(__name__)

MANAGE = (Capability.ADMIN, Capability.TEACHER_OWNER)


def _quiz_document(quiz: Optional[QuizData]) -> Optional[Dict[str, Any]]:
    """Serialize a quiz, numbering questions that came without an id."""
    if quiz is None:
        return None
    document = quiz.model_dump()
    for position, question in enumerate(document["questions"], start=1):
        if question.get("id") is None:
            question["id"] = position
    return document


def _hide_answers(quiz_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not quiz_data:
        return quiz_data
    return {
        **quiz_data,
        "questions": [
            {k: v for k, v in question.items() if k != "correct_index"}
            for question in quiz_data.get("questions", [])
        ],
    }


async def get_lesson_by_id(lesson_id: int, db: AsyncSession) -> Lesson:
    """
    Raises:
        LessonNotFoundError: If the lesson does not exist.
    """
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise LessonNotFoundError(lesson_id)
    return lesson


async def _next_order(course_id: int, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.max(Lesson.order)).where(Lesson.course_id == course_id)
    )
    return (result.scalar() or 0) + 1


async def _commit_lesson_order(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise InvalidInputError("Another lesson of this course already uses that order")


async def create_lesson(
    user: User,
    data: LessonCreate,
    db: AsyncSession,
) -> Lesson:
    """
    Add a lesson to a course.

    The order defaults to one past the current last lesson.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
        InvalidInputError: If the order is already taken.
    """
    course = await get_course_by_id(data.course_id, db)
    require_capability(user, MANAGE, course=course)

    order = data.order if data.order is not None else await _next_order(course.id, db)

    lesson = Lesson(
        course_id=course.id,
        title=data.title,
        type=data.type,
        order=order,
        video_url=data.video_url,
        content=data.content,
        quiz_data=_quiz_document(data.quiz_data),
    )
    db.add(lesson)
    await _commit_lesson_order(db)
    await db.refresh(lesson)

    logger.info("Lesson %s added to course %s at position %s", lesson.id, lesson.course_id, order)
    return lesson


async def get_lesson(
    user: User,
    lesson_id: int,
    db: AsyncSession,
) -> Dict[str, Any]:
    """
    Lesson as seen by the current user, with their progress and
    previous/next navigation.

    Learners must be enrolled; the owner and admins always have access
    and are the only ones who see quiz answers.

    Raises:
        LessonNotFoundError: If the lesson does not exist.
        NotEnrolledError: If a learner is not enrolled in the course.
    """
    lesson = await get_lesson_by_id(lesson_id, db)
    course = await db.get(Course, lesson.course_id)

    manager = can_manage_course(user, course)
    if not manager:
        await require_enrollment(user.id, course.id, db)

    result = await db.execute(
        select(Lesson.id, Lesson.title, Lesson.type, Lesson.order)
        .where(Lesson.course_id == course.id)
        .order_by(Lesson.order)
    )
    siblings = [row._asdict() for row in result.all()]
    index = next(i for i, row in enumerate(siblings) if row["id"] == lesson.id)

    progress = (
        await db.execute(
            select(Progress).where(
                Progress.user_id == user.id,
                Progress.lesson_id == lesson.id,
            )
        )
    ).scalar_one_or_none()

    return {
        "id": lesson.id,
        "course_id": lesson.course_id,
        "title": lesson.title,
        "type": lesson.type,
        "order": lesson.order,
        "video_url": lesson.video_url,
        "content": lesson.content,
        "quiz_data": lesson.quiz_data if manager else _hide_answers(lesson.quiz_data),
        "completed": progress.completed if progress else False,
        "time_spent": progress.time_spent if progress else 0,
        "quiz_score": progress.quiz_score if progress else None,
        "navigation": {
            "prev": siblings[index - 1] if index > 0 else None,
            "next": siblings[index + 1] if index + 1 < len(siblings) else None,
            "current": index + 1,
            "total": len(siblings),
        },
    }


async def update_lesson(
    user: User,
    lesson_id: int,
    data: LessonUpdate,
    db: AsyncSession,
) -> Lesson:
    """
    Update a lesson. A type change replaces the whole payload.

    Raises:
        LessonNotFoundError: If the lesson does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
        InvalidInputError: If the new order is already taken.
    """
    lesson = await get_lesson_by_id(lesson_id, db)
    course = await get_course_by_id(lesson.course_id, db)
    require_capability(user, MANAGE, course=course)

    if data.title is not None:
        lesson.title = data.title
    if data.order is not None:
        lesson.order = data.order
    if data.type is not None:
        lesson.type = data.type
        lesson.video_url = data.video_url if data.type == LessonType.VIDEO else None
        lesson.content = data.content if data.type == LessonType.TEXT else None
        lesson.quiz_data = (
            _quiz_document(data.quiz_data) if data.type == LessonType.QUIZ else None
        )

    await _commit_lesson_order(db)
    await db.refresh(lesson)
    return lesson


async def delete_lesson(
    user: User,
    lesson_id: int,
    db: AsyncSession,
) -> None:
    """
    Delete a lesson and every progress row recorded against it.

    Raises:
        LessonNotFoundError: If the lesson does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
    """
    lesson = await get_lesson_by_id(lesson_id, db)
    course = await get_course_by_id(lesson.course_id, db)
    require_capability(user, MANAGE, course=course)

    await db.execute(
        delete(Progress)
        .where(Progress.lesson_id == lesson_id)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(delete(Lesson).where(Lesson.id == lesson_id))
    await db.commit()

    logger.info("Lesson %s deleted from course %s", lesson_id, course.id)


async def reorder_lessons(
    user: User,
    course_id: int,
    data: LessonReorder,
    db: AsyncSession,
) -> List[Lesson]:
    """
    Assign new positions to lessons of a course.

    Lessons left out keep their position; the resulting orders must
    still be unique within the course.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: Unless the user owns the course or is an admin.
        InvalidInputError: On duplicate ids or orders, or foreign lessons.
    """
    course = await get_course_by_id(course_id, db, with_lessons=True)
    require_capability(user, MANAGE, course=course)

    new_orders = {item.id: item.order for item in data.lesson_orders}
    if len(new_orders) != len(data.lesson_orders):
        raise InvalidInputError("Each lesson may appear only once")

    lessons = {lesson.id: lesson for lesson in course.lessons}
    foreign = set(new_orders) - set(lessons)
    if foreign:
        raise InvalidInputError(
            f"Lessons {sorted(foreign)} do not belong to course {course_id}"
        )

    final = {lid: new_orders.get(lid, lesson.order) for lid, lesson in lessons.items()}
    if len(set(final.values())) != len(final):
        raise InvalidInputError("Lesson orders must be unique within a course")

    # (course_id, order) is unique, so park moved lessons on negative slots first
    for slot, lesson_id in enumerate(new_orders, start=1):
        lessons[lesson_id].order = -slot
    await db.flush()
    for lesson_id, order in new_orders.items():
        lessons[lesson_id].order = order
    await db.commit()

    logger.info("Reordered %s lessons of course %s", len(new_orders), course_id)
    return sorted(lessons.values(), key=lambda lesson: lesson.order)
