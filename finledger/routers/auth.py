"""
Authentication router.

  POST /auth/signup  — Register; returns the personal project and a token
  POST /auth/login   — Exchange email and password for a token
  GET  /auth/me      — The user the token belongs to

Signup and login are the only routes that accept requests without a
bearer token (besides /health).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.auth import (
    CurrentUserResponse,
    SignupResponse,
    TokenResponse,
    UserLoginRequest,
    UserSignupRequest,
)
from finledger.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(request: UserSignupRequest, db: AsyncSession = Depends(get_db)):
    """409 when the email is taken; the password is hashed before storage."""
    user, project, token = await auth_service.signup(
        db,
        email=request.email,
        password=request.password,
        display_name=request.display_name,
        project_name=request.project_name,
    )
    return SignupResponse(
        user_id=user.id,
        email=user.email,
        user_type=user.user_type.value,
        project_id=project.id,
        token=token,
    )


@router.post("/login", response_model=TokenResponse, summary="Log in")
async def login(request: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Returns a bearer token valid for ACCESS_TOKEN_EXPIRE_MINUTES.

    Unknown email and wrong password both answer 401 "Invalid email or
    password".
    """
    _, token = await auth_service.login(db, email=request.email, password=request.password)
    return TokenResponse(token=token)


@router.get("/me", response_model=CurrentUserResponse, summary="Current user")
async def me(user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        user_type=user.user_type.value,
    )
