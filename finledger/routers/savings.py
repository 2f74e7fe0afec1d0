"""
Savings router — funds and deposit/withdrawal movements.

  POST /projects/{project_id}/savings                         — Create a fund
  GET  /projects/{project_id}/savings                         — List funds
  GET  /projects/{project_id}/savings/summary                 — Totals
  POST /projects/{project_id}/savings/{fund_id}/movements     — Deposit or withdraw
  GET  /projects/{project_id}/savings/{fund_id}/movements     — Movement history
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.savings import (
    SavingsFundCreateRequest,
    SavingsFundResponse,
    SavingsMovementCreateRequest,
    SavingsMovementResponse,
    SavingsSummaryResponse,
)
from finledger.services import savings_service

router = APIRouter()


@router.post(
    "",
    response_model=SavingsFundResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a savings fund",
)
async def create_fund(
    project_id: uuid.UUID,
    request: SavingsFundCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await savings_service.create_fund(
        db, project_id, user.id, request.name, request.target_amount
    )


@router.get(
    "",
    response_model=list[SavingsFundResponse],
    summary="List savings funds",
)
async def list_funds(
    project_id: uuid.UUID,
    include_archived: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await savings_service.get_funds(db, project_id, user.id, include_archived)


@router.get(
    "/summary",
    response_model=SavingsSummaryResponse,
    summary="Savings totals",
)
async def savings_summary(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await savings_service.get_savings_summary(db, project_id, user.id)


@router.post(
    "/{fund_id}/movements",
    response_model=SavingsMovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit into or withdraw from a fund",
)
async def create_movement(
    project_id: uuid.UUID,
    fund_id: uuid.UUID,
    request: SavingsMovementCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Withdrawals larger than the fund balance are rejected (409)."""
    return await savings_service.create_movement(
        db,
        project_id,
        user.id,
        fund_id,
        movement_type=request.type,
        amount=request.amount,
        movement_date=request.date,
        description=request.description,
    )


@router.get(
    "/{fund_id}/movements",
    response_model=list[SavingsMovementResponse],
    summary="List a fund's movements",
)
async def list_movements(
    project_id: uuid.UUID,
    fund_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await savings_service.get_movements(db, project_id, user.id, fund_id)
