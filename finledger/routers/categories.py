"""
Categories router.

  POST /projects/{project_id}/categories  — Create a category
  GET  /projects/{project_id}/categories  — List categories (optionally by type)
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.category import CategoryCreateRequest, CategoryResponse
from finledger.services import category_service

router = APIRouter()


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
async def create_category(
    project_id: uuid.UUID,
    request: CategoryCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.create_category(
        db, project_id, user.id, request.name, request.type, request.color
    )


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    project_id: uuid.UUID,
    type: Literal["income", "expense"] | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Includes system categories created by transfers and card payments."""
    return await category_service.get_categories(db, project_id, user.id, type)
