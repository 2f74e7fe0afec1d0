"""
Credits router — loans repaid in installments.

  POST   /projects/{project_id}/credits                              — Create
  GET    /projects/{project_id}/credits                              — List with progress
  GET    /projects/{project_id}/credits/summary                      — Totals
  GET    /projects/{project_id}/credits/paid-installments-preview    — Installments already due
  GET    /projects/{project_id}/credits/{credit_id}                  — Details with progress
  PATCH  /projects/{project_id}/credits/{credit_id}                  — Partial update
  POST   /projects/{project_id}/credits/{credit_id}/archive          — Archive / restore
  POST   /projects/{project_id}/credits/{credit_id}/installments/next — Generate next installment
  POST   /projects/{project_id}/credits/{credit_id}/installments/all  — Generate the rest
  DELETE /projects/{project_id}/credits/{credit_id}                  — Delete with its legs
"""

import uuid
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.credit import (
    CreditArchiveRequest,
    CreditCreateRequest,
    CreditProgressResponse,
    CreditResponse,
    CreditSummaryResponse,
    CreditUpdateRequest,
    GeneratedInstallmentsResponse,
    PaidInstallmentsPreviewResponse,
)
from finledger.schemas.transaction import TransactionResponse
from finledger.services import credit_service
from finledger.services.access import require_project_access

router = APIRouter()


@router.post(
    "",
    response_model=CreditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a credit",
)
async def create_credit(
    project_id: uuid.UUID,
    request: CreditCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a credit. ``paid_installments`` records installments paid before
    the credit was tracked; they are booked at their original due dates.
    """
    return await credit_service.create_credit(
        db=db,
        project_id=project_id,
        user_id=user.id,
        name=request.name,
        principal_amount=request.principal_amount,
        installment_amount=request.installment_amount,
        installments=request.installments,
        start_date=request.start_date,
        frequency=request.frequency,
        category_id=request.category_id,
        account_id=request.account_id,
        entity_id=request.entity_id,
        description=request.description,
        notes=request.notes,
        paid_installments=request.paid_installments,
    )


@router.get(
    "",
    response_model=list[CreditProgressResponse],
    summary="List credits",
)
async def list_credits(
    project_id: uuid.UUID,
    include_archived: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await credit_service.get_credits(db, project_id, user.id, include_archived)


@router.get(
    "/summary",
    response_model=CreditSummaryResponse,
    summary="Credit totals",
)
async def credit_summary(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await credit_service.get_credit_summary(db, project_id, user.id)


@router.get(
    "/paid-installments-preview",
    response_model=PaidInstallmentsPreviewResponse,
    summary="How many installments of a plan are already due",
)
async def paid_installments_preview(
    project_id: uuid.UUID,
    start_date: date = Query(...),
    installments: int = Query(..., ge=1),
    frequency: Literal["weekly", "biweekly", "monthly"] = Query("monthly"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_project_access(db, project_id, user.id)
    return PaidInstallmentsPreviewResponse(
        calculated_paid_installments=credit_service.calculate_paid_installments(
            start_date, frequency, installments
        )
    )


@router.get(
    "/{credit_id}",
    response_model=CreditProgressResponse,
    summary="Get a credit",
)
async def get_credit(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await credit_service.get_credit(db, project_id, user.id, credit_id)


@router.patch(
    "/{credit_id}",
    response_model=CreditResponse,
    summary="Update a credit",
)
async def update_credit(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    request: CreditUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await credit_service.update_credit(
        db, project_id, user.id, credit_id, request.model_dump(exclude_unset=True)
    )


@router.post(
    "/{credit_id}/archive",
    response_model=CreditResponse,
    summary="Archive or restore a credit",
)
async def archive_credit(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    request: CreditArchiveRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await credit_service.archive_credit(
        db, project_id, user.id, credit_id, request.is_archived
    )


@router.post(
    "/{credit_id}/installments/next",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate the next installment",
)
async def generate_next_installment(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Creates the next unpaid installment at its due date (409 when all exist)."""
    return await credit_service.generate_next_installment(db, project_id, user.id, credit_id)


@router.post(
    "/{credit_id}/installments/all",
    response_model=GeneratedInstallmentsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate all remaining installments",
)
async def generate_all_installments(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await credit_service.generate_all_remaining_installments(
        db, project_id, user.id, credit_id
    )
    return GeneratedInstallmentsResponse(count=count)


@router.delete(
    "/{credit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a credit",
)
async def delete_credit(
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Paid installments are reverted from the paying account's balance."""
    await credit_service.delete_credit(db, project_id, user.id, credit_id)
