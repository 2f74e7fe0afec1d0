"""
Budgets router — monthly spending limits per category.

  POST   /projects/{project_id}/budgets                 — Create (409 if the period is taken)
  PUT    /projects/{project_id}/budgets                 — Create or replace the amount
  GET    /projects/{project_id}/budgets?year&month      — Budgets vs actual spending
  POST   /projects/{project_id}/budgets/copy-previous   — Copy last month's budgets
  PATCH  /projects/{project_id}/budgets/{budget_id}     — Change the amount
  DELETE /projects/{project_id}/budgets/{budget_id}     — Delete
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.budget import (
    BudgetCopyRequest,
    BudgetCopyResponse,
    BudgetCreateRequest,
    BudgetResponse,
    BudgetStatusResponse,
    BudgetUpdateRequest,
)
from finledger.services import budget_service

router = APIRouter()


@router.post(
    "",
    response_model=BudgetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a budget",
)
async def create_budget(
    project_id: uuid.UUID,
    request: BudgetCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.create_budget(
        db, project_id, user.id,
        category_id=request.category_id,
        year=request.year,
        month=request.month,
        amount=request.amount,
    )


@router.put(
    "",
    response_model=BudgetResponse,
    summary="Create or update a budget",
)
async def upsert_budget(
    project_id: uuid.UUID,
    request: BudgetCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.upsert_budget(
        db, project_id, user.id,
        category_id=request.category_id,
        year=request.year,
        month=request.month,
        amount=request.amount,
    )


@router.get(
    "",
    response_model=list[BudgetStatusResponse],
    summary="Budgets of a month with actual spending",
)
async def list_budgets(
    project_id: uuid.UUID,
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.get_budgets(db, project_id, user.id, year, month)


@router.post(
    "/copy-previous",
    response_model=BudgetCopyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Copy the previous month's budgets",
)
async def copy_previous_month(
    project_id: uuid.UUID,
    request: BudgetCopyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Categories already budgeted in the target month are left alone."""
    count = await budget_service.copy_from_previous_month(
        db, project_id, user.id, request.year, request.month
    )
    return BudgetCopyResponse(count=count)


@router.patch(
    "/{budget_id}",
    response_model=BudgetResponse,
    summary="Change a budget's amount",
)
async def update_budget(
    project_id: uuid.UUID,
    budget_id: uuid.UUID,
    request: BudgetUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await budget_service.update_budget(
        db, project_id, user.id, budget_id, request.amount
    )


@router.delete(
    "/{budget_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a budget",
)
async def delete_budget(
    project_id: uuid.UUID,
    budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await budget_service.delete_budget(db, project_id, user.id, budget_id)
