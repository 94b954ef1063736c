"""
Lesson Model

Individual lesson within a course. Exactly one payload column is populated,
chosen by the lesson type.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import JSON, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.core.database import Base
from lms.models.enums import LessonType

if TYPE_CHECKING:
    from lms.models.course import Course
    from lms.models.progress import Progress


class Lesson(Base):
    """
    Lesson model.

    Attributes:
        id: Integer primary key.
        course_id: Foreign key to courses table.
        title: Lesson title.
        type: VIDEO, TEXT or QUIZ.
        order: Position within the course, unique per course.
        video_url: Payload for VIDEO lessons.
        content: Payload for TEXT lessons.
        quiz_data: Payload for QUIZ lessons:
            {"questions": [{"id", "text", "options", "correct_index"}]}
    """

    __tablename__ = "lessons"

    __table_args__ = (
        UniqueConstraint("course_id", "order", name="uq_lesson_course_order"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    type: Mapped[LessonType] = mapped_column(
        Enum(LessonType, name="lesson_type", create_constraint=True),
        nullable=False,
    )
    order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    video_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    content: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    quiz_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    # Relationships
    course: Mapped["Course"] = relationship(
        "Course",
        back_populates="lessons",
    )
    progress_records: Mapped[list["Progress"]] = relationship(
        "Progress",
        back_populates="lesson",
        cascade="all, delete-orphan",
    )

    @property
    def questions(self) -> list[dict]:
        """Quiz questions, empty for non-quiz lessons."""
        if not self.quiz_data:
            return []
        return list(self.quiz_data.get("questions", []))

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, type={self.type}, order={self.order})>"
