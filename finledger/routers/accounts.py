"""
Accounts router — the caller's own accounts.

Accounts belong to a user and can be used from any project the user is a
member of, so these routes are not project-scoped.

  POST   /accounts                        — Create an account
  GET    /accounts                        — List your accounts
  GET    /accounts/{account_id}           — Account details
  PATCH  /accounts/{account_id}           — Partial update
  DELETE /accounts/{account_id}           — Archive
  GET    /accounts/{account_id}/balance   — Running vs recomputed balance
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import get_current_user
from finledger.models.user import User
from finledger.schemas.account import (
    AccountCreateRequest,
    AccountResponse,
    AccountUpdateRequest,
    BalanceResponse,
)
from finledger.services import account_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def create_account(
    request: AccountCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a checking, savings, cash or credit card account.

    The running balance starts at ``initial_balance``. Only credit cards
    accept a ``credit_limit``.
    """
    return await account_service.create_account(
        db=db,
        user_id=user.id,
        name=request.name,
        account_type=request.type,
        currency=request.currency,
        initial_balance=request.initial_balance,
        bank_name=request.bank_name,
        credit_limit=request.credit_limit,
    )


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List your accounts",
)
async def list_accounts(
    include_archived: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_accounts(db, user.id, include_archived)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns 403 for someone else's account and 404 if it doesn't exist."""
    return await account_service.get_account(db, account_id, user.id)


@router.patch(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Update an account",
)
async def update_account(
    account_id: uuid.UUID,
    request: AccountUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Changing ``initial_balance`` shifts the running balance by the difference."""
    return await account_service.update_account(
        db, account_id, user.id, request.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Archive an account",
)
async def archive_account(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.archive_account(db, account_id, user.id)


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    summary="Check account balance",
)
async def get_balance(
    account_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    The running balance and one recomputed from paid records.

    ``match`` false means the incremental bookkeeping drifted.
    """
    return await account_service.get_balance(db, account_id, user.id)
