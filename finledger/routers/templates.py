"""
Templates router — recurring obligations loaded into new billing cycles.

  POST   /projects/{project_id}/templates                        — Create a template
  GET    /projects/{project_id}/templates                        — List with items
  POST   /projects/{project_id}/templates/{template_id}/items    — Add an item
  PATCH  /projects/{project_id}/templates/{template_id}/active   — Enable / disable
  DELETE /projects/{project_id}/templates/{template_id}          — Archive
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.template import (
    TemplateActiveRequest,
    TemplateCreateRequest,
    TemplateItemCreateRequest,
    TemplateItemResponse,
    TemplateResponse,
    TemplateWithItemsResponse,
)
from finledger.services import template_service

router = APIRouter()


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a template",
)
async def create_template(
    project_id: uuid.UUID,
    request: TemplateCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await template_service.create_template(
        db, project_id, user.id, request.name, request.description
    )


@router.get(
    "",
    response_model=list[TemplateWithItemsResponse],
    summary="List templates",
)
async def list_templates(
    project_id: uuid.UUID,
    include_archived: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await template_service.get_templates(db, project_id, user.id, include_archived)


@router.post(
    "/{template_id}/items",
    response_model=TemplateItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an item to a template",
)
async def add_item(
    project_id: uuid.UUID,
    template_id: uuid.UUID,
    request: TemplateItemCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await template_service.add_item(
        db,
        project_id,
        user.id,
        template_id,
        item_type=request.type,
        description=request.description,
        amount=request.amount,
        category_id=request.category_id,
        account_id=request.account_id,
        entity_id=request.entity_id,
        notes=request.notes,
    )


@router.patch(
    "/{template_id}/active",
    response_model=TemplateResponse,
    summary="Enable or disable a template",
)
async def set_template_active(
    project_id: uuid.UUID,
    template_id: uuid.UUID,
    request: TemplateActiveRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await template_service.set_template_active(
        db, project_id, user.id, template_id, request.is_active
    )


@router.delete(
    "/{template_id}",
    response_model=TemplateResponse,
    summary="Archive a template",
)
async def archive_template(
    project_id: uuid.UUID,
    template_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await template_service.archive_template(db, project_id, user.id, template_id)
