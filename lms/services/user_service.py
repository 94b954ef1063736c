"""
User Service

Admin user management: provisioning, listing, role changes and removal.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.exceptions import InvalidInputError, UserNotFoundError
from lms.core.security import hash_password
from lms.models.course import Course
from lms.models.enums import UserRole
from lms.models.progress import Progress
from lms.models.user import User
from lms.schemas.user import UserCreate
from lms.services.permissions import require_admin


logger = logging.getLogger(__name__)


async def get_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(
    actor: User,
    data: UserCreate,
    db: AsyncSession,
) -> User:
    """
    Provision a new account.

    Raises:
        ForbiddenError: If the actor is not an admin.
        InvalidInputError: If the email is already registered.
    """
    require_admin(actor)

    if await get_user_by_email(data.email, db) is not None:
        raise InvalidInputError("Email already registered")

    user = User(
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        full_name=data.full_name,
        role=data.role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise InvalidInputError("Email already registered")
    await db.refresh(user)

    logger.info("User %s created with role %s", user.id, user.role.value)
    return user


async def list_users(
    actor: User,
    db: AsyncSession,
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    page: int = 1,
    size: int = 20,
) -> Tuple[List[User], int]:
    """
    Paginated user list for admins.

    Returns:
        Tuple of (users, total_count).
    """
    require_admin(actor)

    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if search:
        search_term = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(User.full_name).like(search_term),
                func.lower(User.email).like(search_term),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0

    result = await db.execute(
        query.order_by(User.created_at.desc()).offset((page - 1) * size).limit(size)
    )
    return list(result.scalars().all()), total


async def get_user(actor: User, user_id: uuid.UUID, db: AsyncSession) -> User:
    """
    Raises:
        ForbiddenError: If the actor is not an admin.
        UserNotFoundError: If the user does not exist.
    """
    require_admin(actor)
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def update_user_role(
    actor: User,
    user_id: uuid.UUID,
    role: UserRole,
    db: AsyncSession,
) -> User:
    """
    Change a user's role. This is the only path that changes a role.

    Raises:
        ForbiddenError: If the actor is not an admin.
        UserNotFoundError: If the user does not exist.
        InvalidInputError: If admins try to demote themselves.
    """
    user = await get_user(actor, user_id, db)
    if user.id == actor.id and role != UserRole.ADMIN:
        raise InvalidInputError("Admins cannot remove their own admin role")

    previous = user.role
    user.role = role
    await db.commit()
    await db.refresh(user)

    logger.info("User %s role changed from %s to %s", user.id, previous.value, role.value)
    return user


async def delete_user(actor: User, user_id: uuid.UUID, db: AsyncSession) -> None:
    """
    Remove an account with its enrollments and certificates.

    Raises:
        ForbiddenError: If the actor is not an admin.
        UserNotFoundError: If the user does not exist.
        InvalidInputError: If the account still owns courses or is the actor.
    """
    user = await get_user(actor, user_id, db)
    if user.id == actor.id:
        raise InvalidInputError("Admins cannot delete their own account")

    owned = await db.execute(
        select(func.count(Course.id)).where(Course.teacher_id == user_id)
    )
    if owned.scalar():
        raise InvalidInputError("Reassign or delete this user's courses first")

    await db.execute(
        delete(Progress)
        .where(Progress.user_id == user_id)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(user)
    await db.commit()

    logger.info("User %s deleted", user_id)
