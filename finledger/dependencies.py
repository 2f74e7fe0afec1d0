"""
FastAPI dependencies for authentication.

  get_current_user  bearer token -> active User
  require_admin     User -> User, ADMIN only (balance audit routes)

Project membership is checked inside the services
(access.require_project_access), which receive the project id from the
path.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.models.user import User, UserType
from finledger.security import decode_access_token


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to its user.

    Raises:
        HTTPException 401: Bad token, unknown user or deactivated user.
    """
    try:
        user_id = decode_access_token(token)
    except JWTError:
        raise _unauthorized()

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized()
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
