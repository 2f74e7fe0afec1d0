"""
Project service — shared ledgers and their membership.

A project is what every transaction, purchase, credit and billing cycle
hangs off. The creator becomes the owner with an already-accepted
membership; other users are invited by email and gain access only after
accepting.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.config import settings
from finledger.exceptions import AuthorizationError, InvariantViolation, NotFoundError
from finledger.models.project import Project, ProjectMember
from finledger.models.user import User
from finledger.services.access import get_project

logger = logging.getLogger(__name__)


async def create_project(
    db: AsyncSession,
    owner_id: uuid.UUID,
    name: str,
    base_currency: str | None = None,
    max_installment_amount: Decimal | None = None,
) -> Project:
    """Create a project and the owner's accepted membership."""
    project = Project(
        owner_id=owner_id,
        name=name,
        base_currency=(base_currency or settings.DEFAULT_CURRENCY).upper(),
        max_installment_amount=max_installment_amount,
    )
    db.add(project)
    await db.flush()

    now = datetime.now(timezone.utc)
    db.add(ProjectMember(
        project_id=project.id,
        user_id=owner_id,
        role="owner",
        invited_at=now,
        accepted_at=now,
    ))
    await db.flush()

    logger.info("project_created", extra={"project_id": str(project.id)})
    return project


async def get_projects(db: AsyncSession, user_id: uuid.UUID) -> list[Project]:
    """Projects where the user holds an accepted membership."""
    result = await db.execute(
        select(Project)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .where(
            ProjectMember.user_id == user_id,
            ProjectMember.accepted_at.is_not(None),
        )
        .order_by(Project.created_at.asc())
    )
    return list(result.scalars().all())


async def update_project(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    updates: dict,
) -> Project:
    """Partial update of name, base currency or debt-capacity limit."""
    project = await get_project(db, project_id, user_id)

    if "base_currency" in updates and updates["base_currency"]:
        updates["base_currency"] = updates["base_currency"].upper()

    for field, value in updates.items():
        setattr(project, field, value)

    await db.flush()
    return project


async def invite_member(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    email: str,
) -> ProjectMember:
    """
    Invite an existing user to the project (pending until accepted).

    Only the owner can invite.

    Raises:
        AuthorizationError: If the caller is not the project owner.
        NotFoundError: If no user has that email.
        InvariantViolation: If the user is already a member or invited.
    """
    project = await get_project(db, project_id, user_id)
    if project.owner_id != user_id:
        raise AuthorizationError("Only the project owner can invite members")

    result = await db.execute(select(User).where(User.email == email))
    invitee = result.scalar_one_or_none()
    if invitee is None:
        raise NotFoundError("User", email)

    existing = await db.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == invitee.id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise InvariantViolation(f"{email} is already a member of this project")

    member = ProjectMember(project_id=project_id, user_id=invitee.id, role="member")
    db.add(member)
    await db.flush()
    return member


async def accept_invitation(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> ProjectMember:
    """
    Accept a pending invitation. Accepting twice is a no-op.

    Raises:
        NotFoundError: If the user was never invited.
    """
    result = await db.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Invitation for project", project_id)

    if member.accepted_at is None:
        member.accepted_at = datetime.now(timezone.utc)
        await db.flush()
    return member
