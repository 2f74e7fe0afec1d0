"""
Transactions router — income and expense records of a project.

  POST   /projects/{project_id}/transactions                          — Create
  GET    /projects/{project_id}/transactions                          — List (filters, paging)
  GET    /projects/{project_id}/transactions/summary                  — Income/expense totals
  GET    /projects/{project_id}/transactions/credit-card/{account_id}/unpaid
                                                                      — Installments a card payment can settle
  POST   /projects/{project_id}/transactions/historically-paid        — Flag pre-existing debt
  GET    /projects/{project_id}/transactions/{transaction_id}         — Details
  PATCH  /projects/{project_id}/transactions/{transaction_id}         — Partial update
  PATCH  /projects/{project_id}/transactions/{transaction_id}/paid    — Toggle paid
  DELETE /projects/{project_id}/transactions/{transaction_id}         — Delete (both legs of a transfer)

Every balance effect of these routes goes through the ledger core: a
record moves its account's balance only while it is paid.
"""

import uuid
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.transaction import (
    HistoricallyPaidRequest,
    HistoricallyPaidResponse,
    TogglePaidRequest,
    TransactionCreateRequest,
    TransactionResponse,
    TransactionSummaryResponse,
    TransactionUpdateRequest,
)
from finledger.services import transaction_service, transfer_service

router = APIRouter()


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a transaction",
)
async def create_transaction(
    project_id: uuid.UUID,
    request: TransactionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Record income or an expense.

    - **account_id**: must be one of your accounts; without it the record
      never touches a balance
    - **is_paid**: only paid records move the balance; expenses on a
      credit card are always paid
    """
    return await transaction_service.create_transaction(
        db=db,
        project_id=project_id,
        user_id=user.id,
        txn_type=request.type,
        amount=request.amount,
        txn_date=request.date,
        description=request.description,
        account_id=request.account_id,
        category_id=request.category_id,
        entity_id=request.entity_id,
        notes=request.notes,
        is_paid=request.is_paid,
        paid_at=request.paid_at,
    )


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List transactions",
)
async def list_transactions(
    project_id: uuid.UUID,
    account_id: uuid.UUID | None = Query(None),
    type: Literal["income", "expense"] | None = Query(None),
    is_paid: bool | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest first."""
    return await transaction_service.get_transactions(
        db,
        project_id,
        user.id,
        account_id=account_id,
        type_filter=type,
        is_paid=is_paid,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/summary",
    response_model=TransactionSummaryResponse,
    summary="Income and expense totals",
)
async def transaction_summary(
    project_id: uuid.UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction_summary(
        db, project_id, user.id, start_date, end_date
    )


@router.get(
    "/credit-card/{account_id}/unpaid",
    response_model=list[TransactionResponse],
    summary="Card installments not yet settled by a payment",
)
async def unpaid_credit_card_transactions(
    project_id: uuid.UUID,
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_unpaid_credit_card_transactions(
        db, project_id, user.id, account_id
    )


@router.post(
    "/historically-paid",
    response_model=HistoricallyPaidResponse,
    summary="Flag records as paid before they were tracked",
)
async def set_historically_paid(
    project_id: uuid.UUID,
    request: HistoricallyPaidRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await transfer_service.set_historically_paid(
        db, project_id, user.id, request.transaction_ids, request.is_historically_paid
    )
    return HistoricallyPaidResponse(updated=updated)


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction",
)
async def get_transaction(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, project_id, user.id, transaction_id)


@router.patch(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Update a transaction",
)
async def update_transaction(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    request: TransactionUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Only the fields present in the body change. On a transfer leg, amount,
    date, description and notes are applied to both legs.
    """
    return await transaction_service.update_transaction(
        db, project_id, user.id, transaction_id, request.model_dump(exclude_unset=True)
    )


@router.patch(
    "/{transaction_id}/paid",
    response_model=TransactionResponse,
    summary="Mark a transaction paid or unpaid",
)
async def toggle_paid(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    request: TogglePaidRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.toggle_paid(
        db, project_id, user.id, transaction_id, request.is_paid, request.paid_at
    )


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
async def delete_transaction(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await transaction_service.delete_transaction(db, project_id, user.id, transaction_id)
