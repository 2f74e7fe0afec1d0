"""
Pydantic schemas for authentication endpoints (signup and login).

Malformed bodies never reach the services: FastAPI answers 422 first.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field


class UserSignupRequest(BaseModel):
    """Request body for POST /auth/signup."""
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: str | None = Field(None, max_length=100)
    project_name: str | None = Field(
        None, max_length=255, description="Name of the default project (defaults to 'Personal')"
    )


class UserLoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class SignupResponse(BaseModel):
    """User info, the default project and a JWT."""
    user_id: uuid.UUID
    email: str
    user_type: str
    project_id: uuid.UUID
    token: str
    token_type: str = "bearer"


class CurrentUserResponse(BaseModel):
    id: uuid.UUID
    email: str
    display_name: str | None
    user_type: str

    model_config = {"from_attributes": True}
