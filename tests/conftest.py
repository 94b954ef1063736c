"""
Pytest Configuration and Fixtures

Provides reusable async fixtures for testing the LMS Backend: a throwaway
SQLite database per test, factories for users, courses and progress, and
an HTTP client wired to the FastAPI app.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./lms-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, List, Sequence, Tuple
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lms.core.database import get_db, init_db
from lms.core.security import create_access_token, hash_password
from lms.models import Course, Enrollment, Lesson, LessonType, Progress, User, UserRole


TEST_PASSWORD = "correct-horse-battery"

QUIZ_QUESTIONS = [
    {"id": 1, "text": "2 + 2 = ?", "options": ["4", "5"], "correct_index": 0},
    {"id": 2, "text": "Capital of France?", "options": ["Rome", "Paris"], "correct_index": 1},
]


# ==================== Database Fixtures ====================

@pytest.fixture
def mock_async_session() -> AsyncMock:
    """
    Create a mock async database session.

    Returns:
        AsyncMock configured to behave like AsyncSession.
    """
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.scalar = AsyncMock()
    session.scalars = AsyncMock()
    return session


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session handed to the service under test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def count_rows(session_maker):
    """
    Count rows of a model in a separate session.

    Usage:
        assert await count_rows(Enrollment, Enrollment.course_id == 1) == 1
    """
    async def _count(model, *criteria) -> int:
        async with session_maker() as session:
            result = await session.execute(
                select(func.count()).select_from(model).where(*criteria)
            )
            return result.scalar() or 0
    return _count


# ==================== Factory Fixtures ====================
# Factories commit through their own session and return detached objects,
# so a rollback in the service session never expires them.

@pytest.fixture
def make_user(session_maker):
    """
    Factory fixture to create users.

    Usage:
        student = await make_user()
        teacher = await make_user(UserRole.TEACHER, name="Ada")
    """
    async def _make(role: UserRole = UserRole.STUDENT, name: str = None) -> User:
        suffix = uuid.uuid4().hex[:8]
        async with session_maker() as session:
            user = User(
                email=f"{role.value.lower()}-{suffix}@example.com",
                password_hash=hash_password(TEST_PASSWORD),
                full_name=name or f"{role.value.title()} {suffix}",
                role=role,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return _make


def lesson_payload(lesson_type: LessonType) -> dict:
    if lesson_type == LessonType.VIDEO:
        return {"video_url": "https://videos.example.com/intro.mp4"}
    if lesson_type == LessonType.TEXT:
        return {"content": "Read this carefully."}
    return {"quiz_data": {"questions": [dict(q) for q in QUIZ_QUESTIONS]}}


@pytest.fixture
def make_course(session_maker):
    """
    Factory fixture to create a course with lessons in order 1..n.

    Usage:
        course, lessons = await make_course(teacher, [LessonType.TEXT] * 3)
    """
    async def _make(
        teacher: User,
        lesson_types: Sequence[LessonType] = (),
        is_published: bool = True,
        title: str = "Intro to Testing",
    ) -> Tuple[Course, List[Lesson]]:
        async with session_maker() as session:
            course = Course(
                teacher_id=teacher.id,
                title=title,
                description="A course for tests",
                category="engineering",
                is_published=is_published,
            )
            session.add(course)
            await session.flush()

            lessons = [
                Lesson(
                    course_id=course.id,
                    title=f"Lesson {position}",
                    type=lesson_type,
                    order=position,
                    **lesson_payload(lesson_type),
                )
                for position, lesson_type in enumerate(lesson_types, start=1)
            ]
            session.add_all(lessons)
            await session.commit()
            await session.refresh(course)
            return course, lessons
    return _make


@pytest.fixture
def enroll_user(session_maker):
    """Factory fixture inserting an enrollment directly."""
    async def _enroll(user: User, course: Course) -> Enrollment:
        async with session_maker() as session:
            enrollment = Enrollment(user_id=user.id, course_id=course.id)
            session.add(enrollment)
            await session.commit()
            await session.refresh(enrollment)
            return enrollment
    return _enroll


@pytest.fixture
def complete_lessons(session_maker):
    """Factory fixture inserting completed progress rows directly."""
    async def _complete(user: User, lessons: Sequence[Lesson], time_spent: int = 60) -> None:
        async with session_maker() as session:
            session.add_all(
                Progress(
                    user_id=user.id,
                    lesson_id=lesson.id,
                    completed=True,
                    completed_at=datetime.now(timezone.utc),
                    time_spent=time_spent,
                )
                for lesson in lessons
            )
            await session.commit()
    return _complete


# ==================== HTTP Client Fixtures ====================

@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient over the ASGI app, with get_db bound to the test database.
    """
    from lms.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """
    Factory fixture building a bearer header for a user.

    Usage:
        response = await client.get("/api/v1/users/me", headers=auth_headers(user))
    """
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}
    return _headers


@pytest.fixture
def user_password() -> str:
    """Plain password of every user built by make_user."""
    return TEST_PASSWORD
