"""
Certificate Model

Course completion certificates with a human-readable verification code.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.core.database import Base

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.course import Course


class Certificate(Base):
    """
    Certificate model for course completion.

    At most one certificate per (user, course); the constraint is what
    keeps concurrent lesson completions from issuing twice.

    Attributes:
        id: Integer primary key.
        user_id: Foreign key to users table.
        course_id: Foreign key to courses table.
        issued_at: Timestamp when certificate was issued.
        code: Unique public code used for verification links.
        summary: Optional text printed on the certificate.
    """

    __tablename__ = "certificates"

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    summary: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="certificates",
    )
    course: Mapped["Course"] = relationship(
        "Course",
        back_populates="certificates",
    )

    def __repr__(self) -> str:
        return f"<Certificate(id={self.id}, code={self.code})>"
