"""
Transfers router — paired legs between two of your accounts.

  POST   /projects/{project_id}/transfers                      — Transfer money
  PATCH  /projects/{project_id}/transfers/{transaction_id}     — Edit both legs
  DELETE /projects/{project_id}/transfers/{transaction_id}     — Remove both legs
  POST   /projects/{project_id}/transfers/credit-card-payment  — Pay card installments

A transfer is always two records: an expense on the source account and
an income on the destination, linked to each other. Either leg's id can
be used to address the transfer.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.transaction import TransactionRecord
from finledger.models.user import User
from finledger.schemas.transaction import (
    CreditCardPaymentRequest,
    CreditCardPaymentResponse,
    TransactionResponse,
    TransferRequest,
    TransferResponse,
    TransferUpdateRequest,
)
from finledger.services import transfer_service

router = APIRouter()


def _transfer_response(out_leg: TransactionRecord, in_leg: TransactionRecord) -> TransferResponse:
    return TransferResponse(
        out_transaction=TransactionResponse.model_validate(out_leg),
        in_transaction=TransactionResponse.model_validate(in_leg),
        amount=out_leg.amount,
        from_account_id=out_leg.account_id,
        to_account_id=in_leg.account_id,
    )


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between accounts",
)
async def create_transfer(
    project_id: uuid.UUID,
    request: TransferRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Move money between two of your accounts.

    Both legs are written, linked and applied to the balances in one
    transaction, or none of it happens. Source and destination must differ.
    """
    out_leg, in_leg = await transfer_service.create_transfer(
        db=db,
        project_id=project_id,
        user_id=user.id,
        from_account_id=request.from_account_id,
        to_account_id=request.to_account_id,
        amount=request.amount,
        transfer_date=request.date,
        description=request.description,
        notes=request.notes,
    )
    return _transfer_response(out_leg, in_leg)


@router.post(
    "/credit-card-payment",
    response_model=CreditCardPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pay credit card installments",
)
async def pay_credit_card(
    project_id: uuid.UUID,
    request: CreditCardPaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer the sum of the selected installments from ``source_account_id``
    to the card and mark each installment as settled by that transfer.

    An optional ``interest_amount`` is booked as a separate expense on the
    source account. Installments already settled are rejected (409).
    """
    return await transfer_service.pay_credit_card_installments(
        db=db,
        project_id=project_id,
        user_id=user.id,
        source_account_id=request.source_account_id,
        card_account_id=request.card_account_id,
        transaction_ids=request.transaction_ids,
        payment_date=request.date,
        description=request.description,
        notes=request.notes,
        interest_amount=request.interest_amount,
        interest_category_id=request.interest_category_id,
        interest_description=request.interest_description,
    )


@router.patch(
    "/{transaction_id}",
    response_model=TransferResponse,
    summary="Edit a transfer",
)
async def update_transfer(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    request: TransferUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    out_leg, in_leg = await transfer_service.update_transfer(
        db, project_id, user.id, transaction_id, request.model_dump(exclude_unset=True)
    )
    return _transfer_response(out_leg, in_leg)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transfer",
)
async def delete_transfer(
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Removes both legs; installments the transfer had settled become unsettled."""
    await transfer_service.delete_transfer(db, project_id, user.id, transaction_id)
