"""
Account service — business logic for account operations.

This module handles:
  - Account creation, update and archiving
  - Account retrieval (single or list, scoped to the owning user)
  - Balance verification (running balance vs. recomputed from paid legs)

Ownership enforcement:
  Accounts belong to a user, not to a project: the same checking account
  can be used from several shared projects. All member-facing functions
  take the authenticated user's id and refuse other users' accounts.

Admin access:
  Functions prefixed with `admin_` do NOT scope by user. They give the
  read-only audit surface (list every account, verify any balance).
"""

import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import AuthorizationError, NotFoundError, ValidationError
from finledger.models.account import Account, CREDIT_CARD
from finledger.services.ledger import adjust_balance, compute_balance, money


async def create_account(
    db: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    account_type: str = "checking",
    currency: str = "USD",
    initial_balance: Decimal = Decimal("0"),
    bank_name: str | None = None,
    credit_limit: Decimal | None = None,
) -> Account:
    """
    Create a new account for a user.

    The running balance starts at the initial balance.

    Raises:
        ValidationError: If a credit limit is given for a non-card account.
    """
    if credit_limit is not None and account_type != CREDIT_CARD:
        raise ValidationError("Only credit card accounts can have a credit limit")

    account = Account(
        user_id=user_id,
        name=name,
        type=account_type,
        currency=currency.upper(),
        bank_name=bank_name,
        initial_balance=money(initial_balance),
        current_balance=money(initial_balance),
        credit_limit=credit_limit,
    )
    db.add(account)
    await db.flush()
    return account


async def get_accounts(
    db: AsyncSession,
    user_id: uuid.UUID,
    include_archived: bool = False,
) -> list[Account]:
    """List the user's accounts, oldest first."""
    query = (
        select(Account)
        .where(Account.user_id == user_id)
        .order_by(Account.created_at.asc())
    )
    if not include_archived:
        query = query.where(Account.is_archived.is_(False))

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Account:
    """
    Get a single account, verifying ownership.

    Raises:
        NotFoundError: If the account doesn't exist.
        AuthorizationError: If the account belongs to someone else.
    """
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if account is None:
        raise NotFoundError("Account", account_id)

    if account.user_id != user_id:
        raise AuthorizationError("You do not have access to this account")

    return account


async def update_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
    updates: dict,
) -> Account:
    """
    Apply a partial update to an account.

    Changing initial_balance shifts the running balance by the same
    difference, so the balance invariant keeps holding.

    Args:
        updates: Only the fields the client supplied
                 (model_dump(exclude_unset=True)).
    """
    account = await get_account(db, account_id, user_id)

    new_type = updates.get("type", account.type)
    new_limit = updates.get("credit_limit", account.credit_limit)
    if new_limit is not None and new_type != CREDIT_CARD:
        raise ValidationError("Only credit card accounts can have a credit limit")

    if "initial_balance" in updates:
        difference = money(updates.pop("initial_balance")) - money(account.initial_balance)
        account.initial_balance = money(account.initial_balance) + difference
        await adjust_balance(db, account.id, difference)

    for field, value in updates.items():
        setattr(account, field, value)

    await db.flush()
    return account


async def archive_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Account:
    """Soft-delete an account. Its history and balance stay intact."""
    account = await get_account(db, account_id, user_id)
    account.is_archived = True
    await db.flush()
    return account


async def get_balance(
    db: AsyncSession,
    account_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Get the running balance alongside a from-scratch recomputation.

    ``match`` is False only if the incremental bookkeeping drifted, which
    would indicate a data integrity problem.
    """
    account = await get_account(db, account_id, user_id)
    return await _balance_report(db, account)


async def _balance_report(db: AsyncSession, account: Account) -> dict:
    computed = await compute_balance(db, account)
    cached = money(account.current_balance)
    return {
        "account_id": account.id,
        "current_balance": cached,
        "computed_balance": computed,
        "match": cached == computed,
        "currency": account.currency,
    }


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_accounts(db: AsyncSession) -> list[Account]:
    """[ADMIN ONLY] List all accounts across all users."""
    result = await db.execute(select(Account).order_by(Account.created_at.asc()))
    return list(result.scalars().all())


async def admin_get_balance(db: AsyncSession, account_id: uuid.UUID) -> dict:
    """[ADMIN ONLY] Balance integrity check for any account."""
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account", account_id)
    return await _balance_report(db, account)
