"""
Certificate Service

Exactly-once certificate issuance per (user, course), lookups, public
verification and PDF rendering.
"""

import logging
import os
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lms.core.config import settings
from lms.core.exceptions import (
    CertificateNotEarnedError,
    CertificateNotFoundError,
    CourseHasNoLessonsError,
    CourseNotFoundError,
    DuplicateCertificateError,
    NotEnrolledError,
)
from lms.models.certificate import Certificate
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import Capability, LessonType
from lms.models.lesson import Lesson
from lms.models.progress import Progress
from lms.models.user import User
from lms.services.completion import course_completion, exceeds_threshold
from lms.services.permissions import has_capability


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 3


def generate_certificate_code(course_id: int) -> str:
    """
    Build a human-readable certificate code.

    Example: LMS-0042-7KQ2M9XD
    """
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{settings.CERTIFICATE_CODE_PREFIX}-{course_id:04d}-{suffix}"


async def get_certificate(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[Certificate]:
    """Get the certificate for a (user, course) pair with its course loaded."""
    result = await db.execute(
        select(Certificate)
        .options(selectinload(Certificate.course))
        .where(
            Certificate.user_id == user_id,
            Certificate.course_id == course_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _average_quiz_score(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[float]:
    result = await db.execute(
        select(func.avg(Progress.quiz_score))
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(
            Progress.user_id == user_id,
            Lesson.course_id == course_id,
            Lesson.type == LessonType.QUIZ,
            Progress.quiz_score.is_not(None),
        )
    )
    avg = result.scalar()
    return float(avg) if avg is not None else None


def build_summary(completed: int, total: int, average_quiz_score: Optional[float]) -> str:
    summary = f"Completed {completed} of {total} lessons"
    if average_quiz_score is not None:
        summary += f" with an average quiz score of {round(average_quiz_score)}%"
    return summary + "."


async def _insert_certificate(
    user_id: uuid.UUID,
    course_id: int,
    summary: str,
    db: AsyncSession,
) -> Certificate:
    """
    Insert and commit a certificate row.

    The (user, course) unique constraint decides concurrent issuance.
    A code collision is retried with a fresh code.

    Raises:
        DuplicateCertificateError: If another request issued it first.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        certificate = Certificate(
            user_id=user_id,
            course_id=course_id,
            code=generate_certificate_code(course_id),
            summary=summary,
            issued_at=datetime.now(timezone.utc),
        )
        db.add(certificate)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await get_certificate(user_id, course_id, db) is not None:
                raise DuplicateCertificateError(user_id=user_id, course_id=course_id)
            if attempt == MAX_CODE_ATTEMPTS:
                raise
            logger.warning("Certificate code collision for course %s, retrying", course_id)
            continue
        return certificate

    raise RuntimeError("unreachable")


async def evaluate_and_issue(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
    require_lessons: bool = False,
) -> Tuple[Optional[Certificate], bool]:
    """
    Issue a certificate if the completion threshold is exceeded.

    Flow:
    1. Return the existing certificate unchanged if there is one.
    2. Count lessons and completed progress for the pair.
    3. If completed / total > CERTIFICATE_THRESHOLD%, insert a certificate.

    Never errors on re-invocation; a certificate issued concurrently by
    another request is returned as if it had been found in step 1.

    Args:
        user_id: Student ID.
        course_id: Course ID.
        db: Database session.
        require_lessons: Raise instead of returning None for an empty course.

    Returns:
        Tuple of (certificate or None, created_by_this_call).

    Raises:
        CourseHasNoLessonsError: Only when require_lessons is set.
    """
    existing = await get_certificate(user_id, course_id, db)
    if existing is not None:
        return existing, False

    completed, total = await course_completion(user_id, course_id, db)

    if total == 0:
        if require_lessons:
            raise CourseHasNoLessonsError()
        return None, False

    if not exceeds_threshold(completed, total, settings.CERTIFICATE_THRESHOLD):
        return None, False

    avg_score = await _average_quiz_score(user_id, course_id, db)

    try:
        await _insert_certificate(
            user_id, course_id, build_summary(completed, total, avg_score), db
        )
    except DuplicateCertificateError:
        logger.warning(
            "Certificate for user %s course %s already issued by a concurrent request",
            user_id,
            course_id,
        )
        return await get_certificate(user_id, course_id, db), False

    certificate = await get_certificate(user_id, course_id, db)
    logger.info(
        "Issued certificate %s to user %s for course %s (%s/%s lessons)",
        certificate.code,
        user_id,
        course_id,
        completed,
        total,
    )
    return certificate, True


async def claim_certificate(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Explicitly request a certificate for a course.

    Raises:
        CourseNotFoundError: If the course does not exist.
        NotEnrolledError: If the user is not enrolled.
        CourseHasNoLessonsError: If the course has no lessons.
        CertificateNotEarnedError: If the threshold has not been exceeded.
    """
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)

    result = await db.execute(
        select(Enrollment.id).where(
            Enrollment.user_id == user.id,
            Enrollment.course_id == course_id,
        )
    )
    if result.scalar_one_or_none() is None:
        raise NotEnrolledError()

    certificate, _ = await evaluate_and_issue(
        user.id, course_id, db, require_lessons=True
    )
    if certificate is None:
        raise CertificateNotEarnedError()
    return certificate


async def list_user_certificates(
    user: User,
    db: AsyncSession,
) -> List[Certificate]:
    """All certificates of a user, newest first."""
    result = await db.execute(
        select(Certificate)
        .options(selectinload(Certificate.course))
        .where(Certificate.user_id == user.id)
        .order_by(Certificate.issued_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_course_certificate(
    user: User,
    course_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Certificate of the current user for a course.

    Raises:
        CertificateNotFoundError: If none was issued.
    """
    certificate = await get_certificate(user.id, course_id, db)
    if certificate is None:
        raise CertificateNotFoundError()
    return certificate


async def get_certificate_by_id(
    actor: User,
    certificate_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Load a certificate with its user and course for its owner or an admin.

    Other users get the same 404 as a missing certificate.
    """
    result = await db.execute(
        select(Certificate)
        .options(selectinload(Certificate.course), selectinload(Certificate.user))
        .where(Certificate.id == certificate_id)
        .execution_options(populate_existing=True)
    )
    certificate = result.scalar_one_or_none()
    if certificate is None:
        raise CertificateNotFoundError()
    if not has_capability(
        actor, (Capability.SELF, Capability.ADMIN), subject_id=certificate.user_id
    ):
        raise CertificateNotFoundError()
    return certificate


async def verify_certificate(code: str, db: AsyncSession) -> Certificate:
    """
    Public lookup of a certificate by its code.

    Raises:
        CertificateNotFoundError: If the code is unknown.
    """
    result = await db.execute(
        select(Certificate)
        .options(selectinload(Certificate.course), selectinload(Certificate.user))
        .where(Certificate.code == code)
        .execution_options(populate_existing=True)
    )
    certificate = result.scalar_one_or_none()
    if certificate is None:
        raise CertificateNotFoundError()
    return certificate


def render_certificate_pdf(certificate: Certificate, user_name: str, course_title: str) -> str:
    """
    Render a PDF certificate using ReportLab.

    Files are cached by code; a certificate never changes once issued.

    Args:
        certificate: Certificate model instance.
        user_name: Name of the student.
        course_title: Title of the course.

    Returns:
        Filesystem path to the generated PDF.
    """
    os.makedirs(settings.CERTIFICATES_DIR, exist_ok=True)

    filepath = os.path.join(settings.CERTIFICATES_DIR, f"{certificate.code}.pdf")
    if os.path.exists(filepath):
        return filepath

    c = canvas.Canvas(filepath, pagesize=landscape(letter))
    width, height = landscape(letter)

    # Border
    c.setStrokeColorRGB(0.2, 0.2, 0.8)
    c.setLineWidth(5)
    c.rect(0.5 * inch, 0.5 * inch, width - 1 * inch, height - 1 * inch)

    c.setFont("Helvetica-Bold", 40)
    c.drawCentredString(width / 2, height - 2.5 * inch, "Certificate of Completion")

    c.setFont("Helvetica", 20)
    c.drawCentredString(width / 2, height - 3.2 * inch, "This is to certify that")

    c.setFont("Helvetica-Bold", 30)
    c.drawCentredString(width / 2, height - 4 * inch, user_name)

    c.setFont("Helvetica", 20)
    c.drawCentredString(width / 2, height - 4.8 * inch, "has successfully completed the course")

    c.setFont("Helvetica-Bold", 25)
    c.drawCentredString(width / 2, height - 5.5 * inch, course_title)

    if certificate.summary:
        c.setFont("Helvetica-Oblique", 12)
        c.drawCentredString(width / 2, height - 6.1 * inch, certificate.summary)

    c.setFont("Helvetica", 12)
    date_str = certificate.issued_at.strftime("%B %d, %Y")
    c.drawString(1 * inch, 1 * inch, f"Date: {date_str}")
    c.drawString(width - 4 * inch, 1 * inch, f"Certificate: {certificate.code}")

    c.save()

    return filepath
