"""
Project access checks.

A user can see and mutate a project's data only with an ACCEPTED
membership (project_members row whose accepted_at is set). Pending
invitations grant nothing.

Two flavours:
  - verify_project_access: boolean, for aggregation reads that degrade to
    an empty/zeroed result instead of failing.
  - require_project_access: raises AuthorizationError, for everything
    that mutates or returns specific rows.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import AuthorizationError, NotFoundError
from finledger.models.project import Project, ProjectMember


async def verify_project_access(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> bool:
    """Return True if the user has an accepted membership on the project."""
    result = await db.execute(
        select(ProjectMember.id)
        .where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
            ProjectMember.accepted_at.is_not(None),
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def require_project_access(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    """
    Ensure the user may operate on the project.

    Raises:
        AuthorizationError: If there is no accepted membership.
    """
    if not await verify_project_access(db, project_id, user_id):
        raise AuthorizationError()


async def get_project(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Project:
    """
    Load a project the user is a member of.

    Raises:
        AuthorizationError: If the user has no accepted membership.
        NotFoundError: If the project row is gone.
    """
    await require_project_access(db, project_id, user_id)

    result = await db.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project", project_id)
    return project
