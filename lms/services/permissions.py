"""
Permissions

Capability checks shared by every service. An actor holds a capability
relative to a resource: SELF when acting on their own record,
TEACHER_OWNER when they are a teacher who owns the course, ADMIN always
for admins.
"""

import uuid
from typing import Iterable, Optional, Set

from lms.core.exceptions import ForbiddenError
from lms.models.course import Course
from lms.models.enums import Capability, UserRole
from lms.models.user import User


def capabilities_for(
    actor: User,
    course: Optional[Course] = None,
    subject_id: Optional[uuid.UUID] = None,
) -> Set[Capability]:
    """
    Compute the capabilities ``actor`` holds for a course and/or subject user.

    Args:
        actor: User performing the operation.
        course: Course the operation targets, if any.
        subject_id: User the operation acts upon, if any.

    Returns:
        Set of held capabilities (possibly empty).
    """
    held: Set[Capability] = set()
    if actor.role == UserRole.ADMIN:
        held.add(Capability.ADMIN)
    if (
        course is not None
        and actor.role == UserRole.TEACHER
        and course.teacher_id == actor.id
    ):
        held.add(Capability.TEACHER_OWNER)
    if subject_id is not None and subject_id == actor.id:
        held.add(Capability.SELF)
    return held


def has_capability(
    actor: User,
    allowed: Iterable[Capability],
    course: Optional[Course] = None,
    subject_id: Optional[uuid.UUID] = None,
) -> bool:
    return bool(capabilities_for(actor, course, subject_id) & set(allowed))


def require_capability(
    actor: User,
    allowed: Iterable[Capability],
    course: Optional[Course] = None,
    subject_id: Optional[uuid.UUID] = None,
    message: Optional[str] = None,
) -> None:
    """
    Raise ForbiddenError unless the actor holds one of ``allowed``.

    Raises:
        ForbiddenError: If none of the allowed capabilities are held.
    """
    if not has_capability(actor, allowed, course, subject_id):
        raise ForbiddenError(message)


def can_manage_course(actor: User, course: Course) -> bool:
    """Owner teacher or admin."""
    return has_capability(
        actor, (Capability.ADMIN, Capability.TEACHER_OWNER), course=course
    )


def require_author(actor: User) -> None:
    """Only teachers and admins author courses."""
    if actor.role not in (UserRole.TEACHER, UserRole.ADMIN):
        raise ForbiddenError("Only teachers and admins can create courses")


def require_admin(actor: User) -> None:
    require_capability(actor, (Capability.ADMIN,), message="Admin access required")
