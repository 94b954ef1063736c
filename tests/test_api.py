"""
API Tests

HTTP status codes and error codes through the FastAPI app, plus a full
enroll, learn and verify flow.
"""

import pytest

from lms.models import LessonType, UserRole


API = "/api/v1"


# ==================== Infrastructure Tests ====================

class TestHealthAndAuth:
    """Tests for health and authentication."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_login(self, client, make_user, user_password):
        student = await make_user()

        response = await client.post(
            f"{API}/auth/login",
            data={"username": student.email, "password": user_password},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = await client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == student.email

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, make_user):
        student = await make_user()
        response = await client.post(
            f"{API}/auth/login",
            data={"username": student.email, "password": "wrong-password"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get(f"{API}/courses")
        assert response.status_code == 401

        response = await client.get(
            f"{API}/courses", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


# ==================== Error Mapping Tests ====================

class TestErrorResponses:
    """Domain errors render with their status and code."""

    @pytest.mark.asyncio
    async def test_unknown_course_is_404(self, client, make_user, auth_headers):
        student = await make_user()
        response = await client.get(f"{API}/courses/9999", headers=auth_headers(student))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_is_409(
        self, client, make_user, make_course, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, _ = await make_course(teacher, [LessonType.TEXT])
        url = f"{API}/courses/{course.id}/enroll"

        first = await client.post(url, headers=auth_headers(student))
        assert first.status_code == 201

        second = await client.post(url, headers=auth_headers(student))
        assert second.status_code == 409
        assert second.json()["code"] == "already_enrolled"

    @pytest.mark.asyncio
    async def test_progress_without_enrollment_is_403(
        self, client, make_user, make_course, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        _, lessons = await make_course(teacher, [LessonType.TEXT])

        response = await client.put(
            f"{API}/progress/{lessons[0].id}",
            json={"completed": True},
            headers=auth_headers(student),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "not_enrolled"

    @pytest.mark.asyncio
    async def test_invalid_progress_is_422(
        self, client, make_user, make_course, enroll_user, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT])
        await enroll_user(student, course)
        url = f"{API}/progress/{lessons[0].id}"

        response = await client.put(url, json={"time_spent": -1}, headers=auth_headers(student))
        assert response.status_code == 422

        response = await client.put(
            url, json={"completed": True, "quiz_score": 80}, headers=auth_headers(student)
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_student_batch_enroll_is_403(
        self, client, make_user, make_course, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, _ = await make_course(teacher)

        response = await client.post(
            f"{API}/courses/{course.id}/students",
            json={"user_ids": [str(student.id)]},
            headers=auth_headers(student),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_draft_is_hidden(self, client, make_user, make_course, auth_headers):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        draft, _ = await make_course(teacher, is_published=False)

        response = await client.get(f"{API}/courses/{draft.id}", headers=auth_headers(student))
        assert response.status_code == 403
        assert response.json()["code"] == "course_not_published"

    @pytest.mark.asyncio
    async def test_claim_below_threshold(
        self, client, make_user, make_course, enroll_user, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        course, _ = await make_course(teacher, [LessonType.TEXT] * 2)
        await enroll_user(student, course)

        response = await client.post(
            f"{API}/courses/{course.id}/certificate", headers=auth_headers(student)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "certificate_not_earned"


# ==================== Flow Tests ====================

class TestLearningFlow:
    """A teacher batch-enrolls a student who completes the course."""

    @pytest.mark.asyncio
    async def test_batch_enroll_complete_and_verify(
        self, client, make_user, make_course, enroll_user, auth_headers
    ):
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user(name="Katherine Johnson")
        already = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT, LessonType.QUIZ])
        await enroll_user(already, course)

        batch = await client.post(
            f"{API}/courses/{course.id}/students",
            json={"user_ids": [str(student.id), str(already.id)]},
            headers=auth_headers(teacher),
        )
        assert batch.status_code == 200
        body = batch.json()
        assert [item["outcome"] for item in body["results"]] == [
            "created",
            "skipped_already_enrolled",
        ]
        assert (body["created"], body["skipped"], body["failed"]) == (1, 1, 0)

        text = await client.put(
            f"{API}/progress/{lessons[0].id}",
            json={"completed": True, "time_spent": 120},
            headers=auth_headers(student),
        )
        assert text.status_code == 200
        assert text.json()["course_progress"] == {"completed": 1, "total": 2, "percentage": 50}
        assert text.json()["certificate_issued"] is False

        lesson = await client.get(f"{API}/lessons/{lessons[1].id}", headers=auth_headers(student))
        assert lesson.status_code == 200
        assert "correct_index" not in lesson.json()["quiz_data"]["questions"][0]

        quiz = await client.post(
            f"{API}/progress/{lessons[1].id}/quiz",
            json={"answers": [0, 1]},
            headers=auth_headers(student),
        )
        assert quiz.status_code == 200
        result = quiz.json()
        assert result["score"] == 100
        assert result["passed"] is True
        assert result["certificate_issued"] is True
        code = result["certificate"]["code"]

        verified = await client.get(f"{API}/certificates/verify/{code}")
        assert verified.status_code == 200
        assert verified.json()["student_name"] == "Katherine Johnson"
        assert verified.json()["course_title"] == course.title

        mine = await client.get(f"{API}/certificates", headers=auth_headers(student))
        assert [c["code"] for c in mine.json()] == [code]

        roster = await client.get(
            f"{API}/courses/{course.id}/students", headers=auth_headers(teacher)
        )
        rows = {row["user_id"]: row for row in roster.json()}
        assert rows[str(student.id)]["progress"] == 100
        assert rows[str(student.id)]["has_certificate"] is True

    @pytest.mark.asyncio
    async def test_certificate_pdf_download(
        self, client, make_user, make_course, enroll_user, complete_lessons,
        auth_headers, tmp_path, monkeypatch,
    ):
        from lms.core.config import settings

        monkeypatch.setattr(settings, "CERTIFICATES_DIR", str(tmp_path / "pdf"))
        teacher = await make_user(UserRole.TEACHER)
        student = await make_user()
        classmate = await make_user()
        course, lessons = await make_course(teacher, [LessonType.TEXT])
        await enroll_user(student, course)
        await complete_lessons(student, lessons)

        claimed = await client.post(
            f"{API}/courses/{course.id}/certificate", headers=auth_headers(student)
        )
        assert claimed.status_code == 200
        certificate_id = claimed.json()["id"]

        pdf = await client.get(
            f"{API}/certificates/{certificate_id}/pdf", headers=auth_headers(student)
        )
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content.startswith(b"%PDF")

        hidden = await client.get(
            f"{API}/certificates/{certificate_id}/pdf", headers=auth_headers(classmate)
        )
        assert hidden.status_code == 404
