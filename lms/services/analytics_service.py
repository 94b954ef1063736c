"""
Analytics Service

Business logic for teacher analytics and reporting.
"""

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.certificate import Certificate
from lms.models.enrollment import Enrollment
from lms.models.enums import Capability, LessonType
from lms.models.lesson import Lesson
from lms.models.progress import Progress
from lms.models.user import User
from lms.schemas.analytics import CourseAnalyticsResponse, StudentAnalyticsRow
from lms.services.completion import completion_percentage, count_course_lessons
from lms.services.course_service import get_course_by_id
from lms.services.permissions import require_capability


async def get_course_analytics(
    actor: User,
    course_id: int,
    db: AsyncSession,
) -> CourseAnalyticsResponse:
    """
    Get analytics for all students enrolled in a course.

    Args:
        actor: User requesting analytics (owner or admin).
        course_id: Course ID.
        db: Database session.

    Returns:
        Per-student rows and course-wide aggregates.

    Raises:
        CourseNotFoundError: If the course does not exist.
        ForbiddenError: If the actor is neither the owner nor an admin.
    """
    # 1. Verify course ownership
    course = await get_course_by_id(course_id, db)
    require_capability(
        actor,
        (Capability.ADMIN, Capability.TEACHER_OWNER),
        course=course,
        message="You can only view analytics for your own courses",
    )

    total_lessons = await count_course_lessons(course_id, db)

    # 2. Aggregate progress per student in one query
    stats_result = await db.execute(
        select(
            Progress.user_id,
            func.sum(case((Progress.completed.is_(True), 1), else_=0)),
            func.avg(case((Lesson.type == LessonType.QUIZ, Progress.quiz_score))),
        )
        .select_from(Progress)
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(Lesson.course_id == course_id)
        .group_by(Progress.user_id)
    )
    stats = {
        user_id: (int(completed or 0), float(avg) if avg is not None else None)
        for user_id, completed, avg in stats_result.all()
    }

    certified = set(
        (
            await db.execute(
                select(Certificate.user_id).where(Certificate.course_id == course_id)
            )
        ).scalars().all()
    )

    enrollments_result = await db.execute(
        select(Enrollment, User)
        .join(User, User.id == Enrollment.user_id)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrolled_at)
    )

    analytics_data = []
    for enrollment, student in enrollments_result.all():
        completed, avg_score = stats.get(student.id, (0, None))
        analytics_data.append(
            StudentAnalyticsRow(
                student_name=student.full_name,
                user_email=student.email,
                enrolled_at=enrollment.enrolled_at,
                completion_percentage=completion_percentage(completed, total_lessons),
                average_quiz_score=round(avg_score, 1) if avg_score is not None else None,
                certificate_issued=student.id in certified,
            )
        )

    # 3. Course-wide stats
    total_enrollments = len(analytics_data)

    avg_completion = 0.0
    if total_enrollments > 0:
        avg_completion = sum(r.completion_percentage for r in analytics_data) / total_enrollments

    avg_quiz_score = 0.0
    valid_quiz_scores = [r.average_quiz_score for r in analytics_data if r.average_quiz_score is not None]
    if valid_quiz_scores:
        avg_quiz_score = sum(valid_quiz_scores) / len(valid_quiz_scores)

    return CourseAnalyticsResponse(
        total_enrollments=total_enrollments,
        completion_rate=round(avg_completion, 1),
        average_quiz_score=round(avg_quiz_score, 1),
        certificates_issued=len(certified),
        enrollments=analytics_data,
    )
