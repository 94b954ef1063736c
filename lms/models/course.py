"""
Course Model

Course container authored by a teacher, holding an ordered set of lessons.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.core.database import Base

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.lesson import Lesson
    from lms.models.enrollment import Enrollment
    from lms.models.certificate import Certificate


class Course(Base):
    """
    Course model.

    Attributes:
        id: Integer primary key.
        teacher_id: Foreign key to the authoring user (TEACHER or ADMIN).
        title: Course title.
        description: Course description.
        category: Free-form category used for catalog filtering.
        duration: Human readable duration label (e.g. "30 min").
        icon: Optional icon identifier.
        cover_image: Optional cover image URL.
        is_published: Whether students can see and self-enroll.
    """

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    category: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
    )
    duration: Mapped[str] = mapped_column(
        String(50),
        default="30 min",
        nullable=False,
    )
    icon: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    cover_image: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    teacher: Mapped["User"] = relationship(
        "User",
        back_populates="courses",
        lazy="selectin",
    )
    lessons: Mapped[list["Lesson"]] = relationship(
        "Lesson",
        back_populates="course",
        order_by="Lesson.order",
        cascade="all, delete-orphan",
    )
    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment",
        back_populates="course",
    )
    certificates: Mapped[list["Certificate"]] = relationship(
        "Certificate",
        back_populates="course",
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title={self.title[:30]}...)>"
