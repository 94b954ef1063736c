"""
Progress Service Tests

Lesson completion upserts, quiz attempts, validation, certificate side
effects and read-side progress summaries.
"""

from datetime import datetime, timezone

import pytest
from unittest.mock import patch

from lms.core.exceptions import InvalidInputError, LessonNotFoundError, NotEnrolledError
from lms.models import Certificate, LessonType, Progress, ProgressStatus, UserRole
from lms.services import progress_service


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


# ==================== Validation Tests ====================

class TestRecordCompletionValidation:
    """Input is rejected before the database is touched."""

    @pytest.mark.asyncio
    async def test_negative_time_rejected_without_db_access(self, mock_async_session, make_user):
        student = await make_user()

        with pytest.raises(InvalidInputError) as exc_info:
            await progress_service.record_completion(
                student, 1, mock_async_session, time_spent=-5
            )

        assert exc_info.value.status_code == 422
        mock_async_session.execute.assert_not_awaited()
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_out_of_range_score_rejected_without_db_access(
        self, mock_async_session, make_user
    ):
        student = await make_user()

        with pytest.raises(InvalidInputError):
            await progress_service.record_completion(
                student, 1, mock_async_session, completed=True, quiz_score=101
            )

        mock_async_session.get.assert_not_awaited()
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quiz_requires_score(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ])
        await enroll_user(student, course)

        with pytest.raises(InvalidInputError):
            await progress_service.record_completion(student, lessons[0].id, db, completed=True)

        assert await count_rows(Progress) == 0

    @pytest.mark.asyncio
    async def test_score_rejected_on_non_quiz_lesson(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT])
        await enroll_user(student, course)

        with pytest.raises(InvalidInputError):
            await progress_service.record_completion(
                student, lessons[0].id, db, completed=True, quiz_score=90
            )

        assert await count_rows(Progress) == 0

    @pytest.mark.asyncio
    async def test_requires_enrollment(self, db, make_user, make_course, count_rows):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        _, lessons = await make_course(teacher, [LessonType.TEXT])

        with pytest.raises(NotEnrolledError):
            await progress_service.record_completion(student, lessons[0].id, db, completed=True)

        assert await count_rows(Progress) == 0

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, db, make_user):
        student = await make_user()
        with pytest.raises(LessonNotFoundError):
            await progress_service.record_completion(student, 424242, db, completed=True)


# ==================== Upsert Tests ====================

class TestRecordCompletion:
    """Tests for the (user, lesson) progress upsert."""

    @pytest.mark.asyncio
    async def test_time_accumulates_on_a_single_row(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.VIDEO, LessonType.TEXT])
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        await progress_service.record_completion(student, lesson_id, db, time_spent=30)
        result = await progress_service.record_completion(student, lesson_id, db, time_spent=45)

        assert result.progress.time_spent == 75
        assert result.progress.completed is False
        assert result.progress.status == ProgressStatus.IN_PROGRESS
        assert await count_rows(Progress, Progress.lesson_id == lesson_id) == 1

    @pytest.mark.asyncio
    async def test_completion_is_monotonic(self, db, make_user, make_course, enroll_user):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 4)
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        first = await progress_service.record_completion(student, lesson_id, db, completed=True)
        completed_at = first.progress.completed_at

        again = await progress_service.record_completion(
            student, lesson_id, db, completed=True, time_spent=10
        )
        assert again.progress.completed_at == completed_at

        reverted = await progress_service.record_completion(student, lesson_id, db, completed=False)
        assert reverted.progress.completed is True
        assert reverted.progress.completed_at == completed_at
        assert reverted.completed_lessons == 1
        assert reverted.total_lessons == 4
        assert reverted.percentage == 25

    @pytest.mark.asyncio
    async def test_concurrent_first_report_merges_into_existing_row(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        """
        Simulate the losing side of a race: the lookup misses the row,
        the insert hits the unique constraint and the report is applied
        to the stored row instead.
        """
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 2)
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        await progress_service.record_completion(student, lesson_id, db, time_spent=30)

        real_get_progress = progress_service._get_progress
        calls = []

        async def stale_then_real(user_id, lesson_id, db):
            calls.append(lesson_id)
            if len(calls) == 1:
                return None
            return await real_get_progress(user_id, lesson_id, db)

        with patch("lms.services.progress_service._get_progress", new=stale_then_real):
            result = await progress_service.record_completion(
                student, lesson_id, db, completed=True, time_spent=45
            )

        assert len(calls) == 2
        assert result.progress.time_spent == 75
        assert result.progress.completed is True
        assert await count_rows(Progress, Progress.lesson_id == lesson_id) == 1

    @pytest.mark.asyncio
    async def test_failed_insert_without_stored_row_is_not_found(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        """
        When the insert fails and no row can be re-read, the report ends
        in LessonNotFoundError instead of touching a missing row.
        """
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 2)
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        await progress_service.record_completion(student, lesson_id, db, time_spent=30)

        async def always_missing(user_id, lesson_id, db):
            return None

        with patch("lms.services.progress_service._get_progress", new=always_missing):
            with pytest.raises(LessonNotFoundError):
                await progress_service.record_completion(
                    student, lesson_id, db, completed=True, time_spent=45
                )

        assert await count_rows(Progress, Progress.lesson_id == lesson_id) == 1

    @pytest.mark.asyncio
    async def test_report_without_time_is_not_started(self, db, make_user, make_course, enroll_user):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.VIDEO, LessonType.TEXT])
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        first = await progress_service.record_completion(student, lesson_id, db, time_spent=0)
        assert first.progress.completed is False
        assert first.progress.status == ProgressStatus.NOT_STARTED

        second = await progress_service.record_completion(student, lesson_id, db, time_spent=5)
        assert second.progress.status == ProgressStatus.IN_PROGRESS


# ==================== Quiz Tests ====================

class TestQuizAttempts:
    """Tests for quiz scores and the pass mark."""

    @pytest.mark.asyncio
    async def test_failed_then_passed_attempt(self, db, make_user, make_course, enroll_user):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ, LessonType.TEXT])
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        failed = await progress_service.record_completion(
            student, lesson_id, db, completed=True, quiz_score=65
        )
        assert failed.progress.completed is False
        assert failed.progress.quiz_score == 65
        assert failed.progress.completed_at is None

        before = datetime.now(timezone.utc)
        passed = await progress_service.record_completion(
            student, lesson_id, db, completed=True, quiz_score=75
        )
        after = datetime.now(timezone.utc)

        assert passed.progress.completed is True
        assert passed.progress.quiz_score == 75
        assert _naive(before) <= _naive(passed.progress.completed_at) <= _naive(after)

    @pytest.mark.asyncio
    async def test_pass_mark_is_inclusive(self, db, make_user, make_course, enroll_user):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ, LessonType.TEXT])
        await enroll_user(student, course)

        result = await progress_service.record_completion(
            student, lessons[0].id, db, completed=True, quiz_score=70
        )
        assert result.progress.completed is True

    @pytest.mark.asyncio
    async def test_last_attempt_score_is_stored_after_completion(
        self, db, make_user, make_course, enroll_user
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ, LessonType.TEXT])
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        await progress_service.record_completion(
            student, lesson_id, db, completed=True, quiz_score=90
        )
        result = await progress_service.record_completion(
            student, lesson_id, db, completed=True, quiz_score=40
        )

        assert result.progress.quiz_score == 40
        assert result.progress.completed is True

    @pytest.mark.asyncio
    async def test_submit_quiz_grades_on_server(self, db, make_user, make_course, enroll_user):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ, LessonType.TEXT])
        lesson_id = lessons[0].id
        await enroll_user(student, course)

        result, grading = await progress_service.submit_quiz(student, lesson_id, [1, 1], db)
        assert grading == {
            "score": 50,
            "passed": False,
            "correct_count": 1,
            "total_questions": 2,
        }
        assert result.progress.completed is False

        result, grading = await progress_service.submit_quiz(
            student, lesson_id, [0, 1], db, time_spent=20
        )
        assert grading["score"] == 100
        assert grading["passed"] is True
        assert result.progress.completed is True
        assert result.progress.quiz_score == 100

    @pytest.mark.asyncio
    async def test_submit_quiz_rejects_wrong_answer_count(
        self, db, make_user, make_course, enroll_user
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.QUIZ, LessonType.TEXT])
        await enroll_user(student, course)

        with pytest.raises(InvalidInputError):
            await progress_service.submit_quiz(student, lessons[0].id, [0], db)
        with pytest.raises(InvalidInputError):
            await progress_service.submit_quiz(student, lessons[1].id, [0, 1], db)

    def test_grade_quiz(self):
        questions = [{"correct_index": 0}, {"correct_index": 2}, {"correct_index": 1}]
        assert progress_service.grade_quiz(questions, [0, 2, 0]) == (2, 67)


# ==================== Certificate Side Effect Tests ====================

class TestCertificateOnCompletion:
    """Completing a lesson may issue the course certificate."""

    @pytest.mark.asyncio
    async def test_certificate_issued_once_threshold_is_crossed(
        self, db, make_user, make_course, enroll_user, count_rows
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 2)
        course_id = course.id
        await enroll_user(student, course)

        first = await progress_service.record_completion(
            student, lessons[0].id, db, completed=True
        )
        assert first.certificate is None
        assert first.certificate_issued is False

        second = await progress_service.record_completion(
            student, lessons[1].id, db, completed=True
        )
        assert second.certificate is not None
        assert second.certificate_issued is True
        assert second.percentage == 100

        repeat = await progress_service.record_completion(
            student, lessons[1].id, db, time_spent=5
        )
        assert repeat.certificate.id == second.certificate.id
        assert repeat.certificate_issued is False
        assert await count_rows(Certificate, Certificate.course_id == course_id) == 1


# ==================== Read Side Tests ====================

class TestProgressViews:
    """Tests for course progress, overview and portfolio."""

    @pytest.mark.asyncio
    async def test_course_progress_statuses(
        self, db, make_user, make_course, enroll_user, complete_lessons
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 3)
        await enroll_user(student, course)
        await complete_lessons(student, lessons[:1], time_spent=100)
        await progress_service.record_completion(student, lessons[1].id, db, time_spent=20)

        summary = await progress_service.get_course_progress(student, course.id, db)

        assert [entry["status"] for entry in summary["lessons"]] == [
            ProgressStatus.COMPLETED,
            ProgressStatus.IN_PROGRESS,
            ProgressStatus.NOT_STARTED,
        ]
        assert summary["completed_lessons"] == 1
        assert summary["percentage"] == 33
        assert summary["time_spent"] == 120

    @pytest.mark.asyncio
    async def test_course_progress_requires_enrollment(self, db, make_user, make_course):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, _ = await make_course(teacher, [LessonType.TEXT])

        with pytest.raises(NotEnrolledError):
            await progress_service.get_course_progress(student, course.id, db)

    @pytest.mark.asyncio
    async def test_overview_stats(
        self, db, make_user, make_course, enroll_user, complete_lessons
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        done, done_lessons = await make_course(teacher, [LessonType.TEXT] * 2, title="Done")
        half, half_lessons = await make_course(teacher, [LessonType.TEXT] * 3, title="Half")
        await enroll_user(student, done)
        await enroll_user(student, half)
        await complete_lessons(student, done_lessons, time_spent=10)
        await complete_lessons(student, half_lessons[:1], time_spent=5)

        overview = await progress_service.get_progress_overview(student, db)

        by_title = {entry["course_title"]: entry for entry in overview["courses"]}
        assert by_title["Done"]["is_completed"] is True
        assert by_title["Half"]["progress"] == 33
        assert overview["stats"] == {
            "total_courses": 2,
            "completed_courses": 1,
            "in_progress_courses": 1,
            "total_time_spent": 25,
            "average_progress": 67,  # (100 + 33) / 2 = 66.5
        }

    @pytest.mark.asyncio
    async def test_overview_without_enrollments(self, db, make_user):
        student = await make_user()
        overview = await progress_service.get_progress_overview(student, db)
        assert overview["courses"] == []
        assert overview["stats"]["average_progress"] == 0
