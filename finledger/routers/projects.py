"""
Projects router — shared ledgers and their members.

  POST   /projects                              — Create a project (you own it)
  GET    /projects                              — Projects you are a member of
  GET    /projects/{project_id}                 — Project details
  PATCH  /projects/{project_id}                 — Rename, currency, debt limit
  POST   /projects/{project_id}/members         — Invite a user by email (owner)
  POST   /projects/{project_id}/members/accept  — Accept your invitation
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.project import (
    InviteMemberRequest,
    ProjectCreateRequest,
    ProjectMemberResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)
from finledger.services import project_service
from finledger.services.access import get_project

router = APIRouter()


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    request: ProjectCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.create_project(
        db=db,
        owner_id=user.id,
        name=request.name,
        base_currency=request.base_currency,
        max_installment_amount=request.max_installment_amount,
    )


@router.get(
    "",
    response_model=list[ProjectResponse],
    summary="List your projects",
)
async def list_projects(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Projects where you hold an accepted membership."""
    return await project_service.get_projects(db, user.id)


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project details",
)
async def read_project(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_project(db, project_id, user.id)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update a project",
)
async def update_project(
    project_id: uuid.UUID,
    request: ProjectUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial update. Setting ``max_installment_amount`` to null removes the
    debt-capacity limit.
    """
    return await project_service.update_project(
        db, project_id, user.id, request.model_dump(exclude_unset=True)
    )


@router.post(
    "/{project_id}/members",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a member",
)
async def invite_member(
    project_id: uuid.UUID,
    request: InviteMemberRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Only the owner can invite. The invitation grants nothing until accepted."""
    return await project_service.invite_member(db, project_id, user.id, request.email)


@router.post(
    "/{project_id}/members/accept",
    response_model=ProjectMemberResponse,
    summary="Accept an invitation",
)
async def accept_invitation(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.accept_invitation(db, project_id, user.id)
