"""
Authentication service — signup and login.

Signup creates the User and a personal project (owned by the user,
membership already accepted) in the request's transaction and returns a
token, so a new user can post transactions right away.

Login reports the same InvalidCredentialsError for an unknown email, a
wrong password and a deactivated user.

Emails are compared case-insensitively: they are stored and looked up
lowercased.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import DuplicateEmailError, InvalidCredentialsError
from finledger.models.project import Project
from finledger.models.user import User, UserType
from finledger.security import hash_password, verify_password, create_access_token
from finledger.services.project_service import create_project

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Personal"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def _find_user(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == _normalize_email(email)))
    return result.scalar_one_or_none()


def _issue_token(user: User) -> str:
    return create_access_token(user.id, role=user.user_type.value)


async def signup(
    db: AsyncSession,
    email: str,
    password: str,
    display_name: str | None = None,
    project_name: str | None = None,
) -> tuple[User, Project, str]:
    """
    Register a user together with their personal project.

    Returns:
        (user, personal project, access token)

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    if await _find_user(db, email) is not None:
        raise DuplicateEmailError(email)

    user = User(
        email=_normalize_email(email),
        hashed_password=hash_password(password),
        display_name=display_name,
        user_type=UserType.MEMBER,
    )
    db.add(user)
    await db.flush()

    project = await create_project(
        db, owner_id=user.id, name=project_name or DEFAULT_PROJECT_NAME
    )

    logger.info(
        "user_signed_up",
        extra={"user_id": str(user.id), "project_id": str(project.id)},
    )
    return user, project, _issue_token(user)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """
    Check credentials and issue a token.

    Raises:
        InvalidCredentialsError: Unknown email, wrong password or
            deactivated user.
    """
    user = await _find_user(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()
    if not user.is_active:
        raise InvalidCredentialsError()

    return user, _issue_token(user)
