"""
Card purchases router — installment purchases on credit cards.

  POST   /projects/{project_id}/card-purchases                          — Record a purchase
  GET    /projects/{project_id}/card-purchases                          — List with progress
  GET    /projects/{project_id}/card-purchases/summary                  — Debt totals
  GET    /projects/{project_id}/card-purchases/debt-capacity            — Monthly load vs limit
  GET    /projects/{project_id}/card-purchases/{purchase_id}            — Details with progress
  GET    /projects/{project_id}/card-purchases/{purchase_id}/installments — Its legs
  PATCH  /projects/{project_id}/card-purchases/{purchase_id}            — Descriptive fields
  POST   /projects/{project_id}/card-purchases/{purchase_id}/archive    — Deactivate
  DELETE /projects/{project_id}/card-purchases/{purchase_id}            — Delete with its legs
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.card_purchase import (
    CardPurchaseCreateRequest,
    CardPurchaseProgressResponse,
    CardPurchaseResponse,
    CardPurchaseSummaryResponse,
    CardPurchaseUpdateRequest,
    DebtCapacityResponse,
)
from finledger.schemas.transaction import TransactionResponse
from finledger.services import card_purchase_service

router = APIRouter()


@router.post(
    "",
    response_model=CardPurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a card purchase",
)
async def create_card_purchase(
    project_id: uuid.UUID,
    request: CardPurchaseCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a purchase paid in monthly installments on a credit card.

    All installments are created right away and the card balance drops by
    the full total (original amount plus interest) in one movement.
    Installments whose due date is already past are marked as paid before
    tracking started.
    """
    return await card_purchase_service.create_card_purchase(
        db=db,
        project_id=project_id,
        user_id=user.id,
        account_id=request.account_id,
        description=request.description,
        original_amount=request.original_amount,
        installments=request.installments,
        first_charge_date=request.first_charge_date,
        purchase_date=request.purchase_date,
        interest_rate=request.interest_rate,
        category_id=request.category_id,
        entity_id=request.entity_id,
        store_name=request.store_name,
        is_external_debt=request.is_external_debt,
        notes=request.notes,
    )


@router.get(
    "",
    response_model=list[CardPurchaseProgressResponse],
    summary="List card purchases",
)
async def list_card_purchases(
    project_id: uuid.UUID,
    account_id: uuid.UUID | None = Query(None),
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.get_card_purchases(
        db, project_id, user.id, account_id=account_id, active_only=active_only
    )


@router.get(
    "/summary",
    response_model=CardPurchaseSummaryResponse,
    summary="Card purchase totals",
)
async def card_purchase_summary(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.get_card_purchase_summary(db, project_id, user.id)


@router.get(
    "/debt-capacity",
    response_model=DebtCapacityResponse,
    summary="Monthly installment load against the project limit",
)
async def debt_capacity(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Personal monthly installments against the project's
    ``max_installment_amount``. Purchases made for someone else are
    reported separately and do not use up capacity.
    """
    return await card_purchase_service.get_debt_capacity_report(db, project_id, user.id)


@router.get(
    "/{purchase_id}",
    response_model=CardPurchaseProgressResponse,
    summary="Get a card purchase",
)
async def get_card_purchase(
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.get_card_purchase(db, project_id, user.id, purchase_id)


@router.get(
    "/{purchase_id}/installments",
    response_model=list[TransactionResponse],
    summary="List a purchase's installments",
)
async def list_installments(
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.get_card_purchase_installments(
        db, project_id, user.id, purchase_id
    )


@router.patch(
    "/{purchase_id}",
    response_model=CardPurchaseResponse,
    summary="Update a card purchase",
)
async def update_card_purchase(
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
    request: CardPurchaseUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.update_card_purchase(
        db, project_id, user.id, purchase_id, request.model_dump(exclude_unset=True)
    )


@router.post(
    "/{purchase_id}/archive",
    response_model=CardPurchaseResponse,
    summary="Deactivate a card purchase",
)
async def archive_card_purchase(
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_purchase_service.archive_card_purchase(db, project_id, user.id, purchase_id)


@router.delete(
    "/{purchase_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a card purchase",
)
async def delete_card_purchase(
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Deletes every installment and gives the full total back to the card."""
    await card_purchase_service.delete_card_purchase(db, project_id, user.id, purchase_id)
