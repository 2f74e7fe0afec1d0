"""
Billing cycles router — a project's accounting periods.

  POST   /projects/{project_id}/billing-cycles                    — Open a cycle
  GET    /projects/{project_id}/billing-cycles                    — List with totals
  GET    /projects/{project_id}/billing-cycles/current            — The open cycle
  GET    /projects/{project_id}/billing-cycles/summary            — Counts by status
  GET    /projects/{project_id}/billing-cycles/range-summary      — Totals for any range
  GET    /projects/{project_id}/billing-cycles/suggestion         — Dates for the next cycle
  GET    /projects/{project_id}/billing-cycles/{cycle_id}         — Details with totals
  PATCH  /projects/{project_id}/billing-cycles/{cycle_id}         — Edit (open only)
  POST   /projects/{project_id}/billing-cycles/{cycle_id}/close   — Freeze totals
  POST   /projects/{project_id}/billing-cycles/{cycle_id}/reopen  — Discard the snapshot
  POST   /projects/{project_id}/billing-cycles/{cycle_id}/recalculate — Rebuild the snapshot
  DELETE /projects/{project_id}/billing-cycles/{cycle_id}         — Delete
"""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.billing_cycle import (
    BillingCycleCloseRequest,
    BillingCycleCreateRequest,
    BillingCycleResponse,
    BillingCycleSummaryResponse,
    BillingCycleUpdateRequest,
    BillingCycleWithTotalsResponse,
    CycleSuggestionResponse,
    RangeSummaryResponse,
)
from finledger.services import billing_cycle_service

router = APIRouter()


@router.post(
    "",
    response_model=BillingCycleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a billing cycle",
)
async def create_billing_cycle(
    project_id: uuid.UUID,
    request: BillingCycleCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Open a new cycle (409 if one is already open).

    Items of active templates and credit installments due inside the
    cycle are added as unpaid transactions.
    """
    return await billing_cycle_service.create_billing_cycle(
        db,
        project_id,
        user.id,
        name=request.name,
        start_date=request.start_date,
        end_date=request.end_date,
        notes=request.notes,
    )


@router.get(
    "",
    response_model=list[BillingCycleWithTotalsResponse],
    summary="List billing cycles",
)
async def list_billing_cycles(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.get_billing_cycles(db, project_id, user.id)


@router.get(
    "/current",
    response_model=BillingCycleWithTotalsResponse | None,
    summary="The open billing cycle",
)
async def current_billing_cycle(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.get_current_billing_cycle(db, project_id, user.id)


@router.get(
    "/summary",
    response_model=BillingCycleSummaryResponse,
    summary="Billing cycle counts",
)
async def billing_cycle_summary(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.get_billing_cycle_summary(db, project_id, user.id)


@router.get(
    "/range-summary",
    response_model=RangeSummaryResponse,
    summary="Totals for a date range",
)
async def range_summary(
    project_id: uuid.UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.get_range_summary(
        db, project_id, user.id, start_date, end_date
    )


@router.get(
    "/suggestion",
    response_model=CycleSuggestionResponse | None,
    summary="Suggested dates for the next cycle",
)
async def suggest_next_cycle(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.suggest_next_cycle_dates(db, project_id, user.id)


@router.get(
    "/{cycle_id}",
    response_model=BillingCycleWithTotalsResponse,
    summary="Get a billing cycle",
)
async def get_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.get_billing_cycle(db, project_id, user.id, cycle_id)


@router.patch(
    "/{cycle_id}",
    response_model=BillingCycleResponse,
    summary="Update an open billing cycle",
)
async def update_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    request: BillingCycleUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.update_billing_cycle(
        db, project_id, user.id, cycle_id, request.model_dump(exclude_unset=True)
    )


@router.post(
    "/{cycle_id}/close",
    response_model=BillingCycleResponse,
    summary="Close a billing cycle",
)
async def close_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    request: BillingCycleCloseRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Freezes income, expenses, savings and balance into the snapshot."""
    return await billing_cycle_service.close_billing_cycle(
        db, project_id, user.id, cycle_id, end_date=request.end_date if request else None
    )


@router.post(
    "/{cycle_id}/reopen",
    response_model=BillingCycleResponse,
    summary="Reopen a closed billing cycle",
)
async def reopen_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.reopen_billing_cycle(db, project_id, user.id, cycle_id)


@router.post(
    "/{cycle_id}/recalculate",
    response_model=BillingCycleResponse,
    summary="Recalculate a closed cycle's snapshot",
)
async def recalculate_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await billing_cycle_service.recalculate_billing_cycle(db, project_id, user.id, cycle_id)


@router.delete(
    "/{cycle_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a billing cycle",
)
async def delete_billing_cycle(
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Transactions the cycle loaded are kept."""
    await billing_cycle_service.delete_billing_cycle(db, project_id, user.id, cycle_id)
