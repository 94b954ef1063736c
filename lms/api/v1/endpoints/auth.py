"""
Authentication Routes

Handles login. Accounts are provisioned by admins through /users.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import create_access_token, verify_password
from lms.schemas.token import Token
from lms.services import user_service


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=Token,
    summary="Login and get access token",
)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Token:
    """
    Authenticate user and return JWT access token.

    **Flow:**
    1. Find user by email (username field contains email)
    2. Verify password against stored hash
    3. Generate JWT access token

    Note: Uses OAuth2PasswordRequestForm for compatibility with
    Swagger UI's built-in authorization feature.

    Args:
        form_data: OAuth2 form with username (email) and password.
        db: Database session.

    Returns:
        Token: JWT access token and token type.

    Raises:
        HTTPException: 401 if credentials are invalid.
    """
    user = await user_service.get_user_by_email(form_data.username, db)

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(subject=user.id)

    return Token(access_token=access_token, token_type="bearer")
