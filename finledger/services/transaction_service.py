"""
Transaction service — the record mutation core.

THIS IS WHERE BALANCES ARE KEPT HONEST. It handles:
  - Creating standalone income/expense records
  - Partial updates
  - Toggling the paid flag
  - Deletion (including the linked leg of a transfer)

Balance rule:
  Each mutation captures the record's balance-relevant state before it
  changes anything (ledger.leg_state) and hands (old, new) to
  ledger.apply_transition. That one helper reverts what the old state
  contributed and applies what the new state contributes, so:

    create          (None -> new)   delta only if the new record is paid
    update          (old  -> new)   revert-if-was-paid, apply-if-is-paid
    toggle paid     (old  -> new)   no-op when the flag does not change
    delete          (old  -> None)  revert-if-was-paid

Records with a special owner are guarded here:
  - transfer legs are edited and deleted as a pair (transfer_service)
  - card-purchase installments belong to their purchase; their balance
    effect is a single lump sum, so they cannot be re-priced, unpaid or
    deleted one by one
  - reconciled installments (paid_by_transfer_id set) cannot be unpaid

Atomicity:
  Every function runs inside the request's session transaction. A failure
  at any point raises, get_db rolls back, and neither the record writes nor
  the balance adjustments survive.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import InvariantViolation, NotFoundError, ValidationError
from finledger.models.account import Account, CREDIT_CARD
from finledger.models.transaction import TransactionRecord, INCOME, EXPENSE
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.account_service import get_account
from finledger.services.category_service import get_category
from finledger.services.ledger import apply_transition, leg_state, money

logger = logging.getLogger(__name__)

# Fields whose change alters what a record contributes to a balance
BALANCE_FIELDS = frozenset({"account_id", "type", "amount", "is_paid"})


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

async def get_record(
    db: AsyncSession,
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
    lock: bool = False,
) -> TransactionRecord:
    """
    Load a record that belongs to the project.

    Args:
        lock: Take a row lock (SELECT ... FOR UPDATE; no-op on SQLite).

    Raises:
        NotFoundError: If the record doesn't exist in this project.
    """
    query = select(TransactionRecord).where(
        TransactionRecord.id == transaction_id,
        TransactionRecord.project_id == project_id,
    )
    if lock:
        query = query.with_for_update()

    result = await db.execute(query)
    txn = result.scalar_one_or_none()
    if txn is None:
        raise NotFoundError("Transaction", transaction_id)
    return txn


def _forces_paid(account: Account | None, txn_type: str) -> bool:
    # Card expenses hit the card balance as soon as they are made
    return account is not None and account.type == CREDIT_CARD and txn_type == EXPENSE


def _validate_amount(amount: Decimal) -> None:
    if amount is None or money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_transaction(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    txn_type: str,
    amount: Decimal,
    txn_date: date,
    description: str,
    account_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    entity_id: uuid.UUID | None = None,
    notes: str | None = None,
    is_paid: bool = False,
    paid_at: datetime | None = None,
) -> TransactionRecord:
    """
    Record a standalone income or expense.

    An expense on a credit card account is always created paid.

    Args:
        db: Database session.
        project_id: Project the record belongs to.
        user_id: Authenticated user (must be an accepted member).
        txn_type: "income" or "expense".
        amount: Positive amount in the project's base currency.
        txn_date: Date the movement belongs to.
        description: Short narrative.
        account_id: Optional account (must belong to the user).
        category_id: Optional category of this project.
        entity_id: Optional opaque counterparty reference.
        notes: Free text.
        is_paid: Whether the money has actually moved.
        paid_at: Payment timestamp (defaults to now when paid).

    Returns:
        The created TransactionRecord.

    Raises:
        AuthorizationError: No access to the project or the account.
        NotFoundError: Account or category missing.
        ValidationError: Non-positive amount or unknown type.
    """
    await require_project_access(db, project_id, user_id)
    _validate_amount(amount)
    if txn_type not in (INCOME, EXPENSE):
        raise ValidationError(f"Unknown transaction type: {txn_type}")

    account = None
    if account_id is not None:
        account = await get_account(db, account_id, user_id)
    if category_id is not None:
        await get_category(db, project_id, category_id)

    if _forces_paid(account, txn_type):
        is_paid = True

    txn = TransactionRecord(
        project_id=project_id,
        user_id=user_id,
        account_id=account_id,
        category_id=category_id,
        entity_id=entity_id,
        type=txn_type,
        amount=money(amount),
        date=txn_date,
        description=description,
        notes=notes,
        is_paid=is_paid,
        paid_at=(paid_at or datetime.now(timezone.utc)) if is_paid else None,
    )
    db.add(txn)
    await db.flush()

    await apply_transition(db, None, leg_state(txn))

    logger.info(
        "transaction_created",
        extra={
            "project_id": str(project_id),
            "transaction_id": str(txn.id),
            "type": txn_type,
            "amount": str(txn.amount),
            "is_paid": is_paid,
        },
    )
    return txn


async def update_transaction(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    updates: dict,
) -> TransactionRecord:
    """
    Apply a partial update to a record.

    The old balance contribution is reverted and the new one applied even
    when is_paid does not change, because amount, type or account may have.
    Transfer legs are routed to transfer_service.update_transfer so both
    legs change together.

    Args:
        updates: Only the fields the client supplied
                 (model_dump(exclude_unset=True)).

    Raises:
        InvariantViolation: Balance-relevant edit of a card installment or
            reconciled leg, or a type/account/paid edit of a transfer leg.
    """
    await require_project_access(db, project_id, user_id)
    txn = await get_record(db, project_id, transaction_id, lock=True)

    touched = BALANCE_FIELDS & updates.keys()

    if txn.linked_transaction_id is not None:
        if touched - {"amount"}:
            raise InvariantViolation(
                "Transfer legs cannot change type, account or paid state"
            )
        from finledger.services.transfer_service import update_transfer
        out_leg, in_leg = await update_transfer(db, project_id, user_id, txn.id, updates)
        return out_leg if out_leg.id == txn.id else in_leg

    if touched and txn.card_purchase_id is not None:
        raise InvariantViolation(
            "Card purchase installments are managed through their purchase"
        )
    if touched and txn.paid_by_transfer_id is not None:
        raise InvariantViolation("Reconciled installments cannot be modified")

    if "amount" in updates:
        _validate_amount(updates["amount"])
        updates["amount"] = money(updates["amount"])
    if "type" in updates and updates["type"] not in (INCOME, EXPENSE):
        raise ValidationError(f"Unknown transaction type: {updates['type']}")

    account = None
    new_account_id = updates.get("account_id", txn.account_id)
    if "account_id" in updates and new_account_id is not None:
        account = await get_account(db, new_account_id, user_id)
    elif new_account_id is not None:
        account = await db.get(Account, new_account_id)
    if updates.get("category_id") is not None:
        await get_category(db, project_id, updates["category_id"])

    old = leg_state(txn)

    for field, value in updates.items():
        if field == "paid_at":
            continue
        setattr(txn, field, value)

    if updates.keys() & {"account_id", "type"} and _forces_paid(account, txn.type):
        txn.is_paid = True

    if txn.is_paid and not old.is_paid:
        txn.paid_at = updates.get("paid_at") or datetime.now(timezone.utc)
    elif not txn.is_paid:
        txn.paid_at = None
    elif updates.get("paid_at") is not None:
        txn.paid_at = updates["paid_at"]

    await db.flush()
    await apply_transition(db, old, leg_state(txn))
    return txn


async def toggle_paid(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    is_paid: bool,
    paid_at: datetime | None = None,
) -> TransactionRecord:
    """
    Mark a record paid or unpaid.

    Requesting the state the record is already in changes nothing (no
    balance adjustment, paid_at untouched).

    Raises:
        InvariantViolation: For transfer legs, card installments, or
            unpaying a reconciled leg.
    """
    await require_project_access(db, project_id, user_id)
    txn = await get_record(db, project_id, transaction_id, lock=True)

    if txn.is_paid == is_paid:
        return txn

    if txn.linked_transaction_id is not None:
        raise InvariantViolation("Transfer legs are always paid")
    if txn.card_purchase_id is not None:
        raise InvariantViolation(
            "Card purchase installments are managed through their purchase"
        )
    if not is_paid and txn.paid_by_transfer_id is not None:
        raise InvariantViolation("Reconciled installments cannot be marked unpaid")

    old = leg_state(txn)
    txn.is_paid = is_paid
    txn.paid_at = (paid_at or datetime.now(timezone.utc)) if is_paid else None
    await db.flush()

    await apply_transition(db, old, leg_state(txn))

    logger.info(
        "transaction_paid_toggled",
        extra={"transaction_id": str(txn.id), "is_paid": is_paid},
    )
    return txn


async def delete_transaction(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> None:
    """
    Delete a record, reverting its balance effect if it was paid.

    Deleting either leg of a transfer deletes both.

    Raises:
        InvariantViolation: For a single card-purchase installment.
    """
    await require_project_access(db, project_id, user_id)
    txn = await get_record(db, project_id, transaction_id, lock=True)

    if txn.linked_transaction_id is not None:
        from finledger.services.transfer_service import delete_transfer
        await delete_transfer(db, project_id, user_id, txn.id)
        return

    if txn.card_purchase_id is not None:
        raise InvariantViolation(
            "Card purchase installments are deleted with their purchase"
        )

    await apply_transition(db, leg_state(txn), None)
    await db.delete(txn)
    await db.flush()

    logger.info("transaction_deleted", extra={"transaction_id": str(transaction_id)})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_transactions(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    account_id: uuid.UUID | None = None,
    type_filter: str | None = None,
    is_paid: bool | None = None,
    category_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TransactionRecord]:
    """
    List a project's records, newest first, with optional filters.

    Date bounds are inclusive.
    """
    await require_project_access(db, project_id, user_id)

    query = select(TransactionRecord).where(TransactionRecord.project_id == project_id)

    if account_id is not None:
        query = query.where(TransactionRecord.account_id == account_id)
    if type_filter:
        query = query.where(TransactionRecord.type == type_filter)
    if is_paid is not None:
        query = query.where(TransactionRecord.is_paid.is_(is_paid))
    if category_id is not None:
        query = query.where(TransactionRecord.category_id == category_id)
    if start_date is not None:
        query = query.where(TransactionRecord.date >= start_date)
    if end_date is not None:
        query = query.where(TransactionRecord.date <= end_date)

    query = (
        query.order_by(TransactionRecord.date.desc(), TransactionRecord.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_transaction(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> TransactionRecord:
    """Get a single record of the project."""
    await require_project_access(db, project_id, user_id)
    return await get_record(db, project_id, transaction_id)


async def get_unpaid_credit_card_transactions(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    account_id: uuid.UUID,
) -> list[TransactionRecord]:
    """
    Card expenses still waiting for a payoff transfer.

    Only paid legs qualify. Excludes legs already reconciled and legs
    marked as historical debt.
    Returns an empty list when the caller has no access.
    """
    if not await verify_project_access(db, project_id, user_id):
        return []

    result = await db.execute(
        select(TransactionRecord)
        .where(
            TransactionRecord.project_id == project_id,
            TransactionRecord.account_id == account_id,
            TransactionRecord.type == EXPENSE,
            TransactionRecord.is_paid.is_(True),
            TransactionRecord.paid_by_transfer_id.is_(None),
            TransactionRecord.is_historically_paid.is_(False),
            TransactionRecord.linked_transaction_id.is_(None),
        )
        .order_by(TransactionRecord.date.asc(), TransactionRecord.created_at.asc())
    )
    return list(result.scalars().all())


async def get_transaction_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict:
    """
    Income, expense and net totals over an optional inclusive date range.

    Returns zeros when the caller has no access.
    """
    empty = {
        "total_income": Decimal("0.00"),
        "total_expenses": Decimal("0.00"),
        "balance": Decimal("0.00"),
        "transaction_count": 0,
    }
    if not await verify_project_access(db, project_id, user_id):
        return empty

    query = select(
        func.coalesce(
            func.sum(case((TransactionRecord.type == INCOME, TransactionRecord.amount), else_=0)),
            0,
        ),
        func.coalesce(
            func.sum(case((TransactionRecord.type == EXPENSE, TransactionRecord.amount), else_=0)),
            0,
        ),
        func.count(TransactionRecord.id),
    ).where(TransactionRecord.project_id == project_id)

    if start_date is not None:
        query = query.where(TransactionRecord.date >= start_date)
    if end_date is not None:
        query = query.where(TransactionRecord.date <= end_date)

    income, expenses, count = (await db.execute(query)).one()
    income, expenses = money(income), money(expenses)
    return {
        "total_income": income,
        "total_expenses": expenses,
        "balance": income - expenses,
        "transaction_count": count,
    }
