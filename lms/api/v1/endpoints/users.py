"""
User Routes

Endpoints for the current profile and admin user management.
"""

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.enums import UserRole
from lms.models.user import User
from lms.schemas.user import (
    UserCreate,
    UserListResponse,
    UserResponse,
    UserRoleUpdate,
)
from lms.services import user_service


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get the currently logged-in user's profile.

    This endpoint requires authentication via Bearer token.
    """
    return current_user


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users (admin)",
)
async def list_users(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    search: Optional[str] = Query(None, description="Search by name or email"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> UserListResponse:
    users, total = await user_service.list_users(
        current_user, db, role=role, search=search, page=page, size=size
    )
    return UserListResponse(
        items=users,
        total=total,
        page=page,
        size=size,
        pages=(total + size - 1) // size,
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user (admin)",
)
async def create_user(
    user_data: UserCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Provision a new account with a role.

    Raises:
        HTTPException: 403 for non-admins, 422 if the email is taken.
    """
    return await user_service.create_user(current_user, user_data, db)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user (admin)",
)
async def get_user(
    user_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    return await user_service.get_user(current_user, user_id, db)


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change a user's role (admin)",
)
async def update_user_role(
    user_id: uuid.UUID,
    role_update: UserRoleUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Change a user's role. Roles change only through this endpoint.
    """
    return await user_service.update_user_role(
        current_user, user_id, role_update.role, db
    )


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user (admin)",
)
async def delete_user(
    user_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await user_service.delete_user(current_user, user_id, db)
