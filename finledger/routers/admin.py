"""
Admin router — read-only balance audit across all users.

  GET /admin/accounts                       — List every account
  GET /admin/accounts/{account_id}/balance  — Running vs recomputed balance

Admins cannot create or change anything through these routes.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.database import get_db
from finledger.dependencies import require_admin
from finledger.models.user import User
from finledger.schemas.account import AccountResponse, BalanceResponse
from finledger.services import account_service

router = APIRouter()


@router.get(
    "/accounts",
    response_model=list[AccountResponse],
    summary="[Admin] List all accounts",
)
async def admin_list_all_accounts(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.admin_get_all_accounts(db)


@router.get(
    "/accounts/{account_id}/balance",
    response_model=BalanceResponse,
    summary="[Admin] Verify any account's balance",
)
async def admin_get_balance(
    account_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """``match`` false flags an account whose running balance drifted."""
    return await account_service.admin_get_balance(db, account_id)
