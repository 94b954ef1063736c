"""
Progress Model

Per-lesson completion record for a student.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.core.database import Base
from lms.models.enums import ProgressStatus

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.lesson import Lesson


class Progress(Base):
    """
    Progress model for one (user, lesson) pair.

    Attributes:
        id: Integer primary key.
        user_id: Foreign key to users table.
        lesson_id: Foreign key to lessons table.
        completed: Whether the lesson is completed. Never reverts to False.
        completed_at: Server time of the first completion.
        time_spent: Accumulated seconds spent on the lesson.
        quiz_score: Last quiz attempt score (QUIZ lessons only).
    """

    __tablename__ = "progress"

    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    lesson_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    time_spent: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    quiz_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User")
    lesson: Mapped["Lesson"] = relationship(
        "Lesson",
        back_populates="progress_records",
    )

    @property
    def status(self) -> ProgressStatus:
        if self.completed:
            return ProgressStatus.COMPLETED
        if not self.time_spent and self.quiz_score is None:
            return ProgressStatus.NOT_STARTED
        return ProgressStatus.IN_PROGRESS

    def __repr__(self) -> str:
        return f"<Progress(id={self.id}, lesson_id={self.lesson_id}, completed={self.completed})>"
