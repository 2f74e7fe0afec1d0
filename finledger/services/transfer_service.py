"""
Transfer service — paired legs that move money between two accounts.

A transfer is always TWO records created, edited and deleted together:
  1. an EXPENSE leg on the source account
  2. an INCOME leg on the destination account

Each leg's linked_transaction_id points at the other, both are paid from
the moment they exist, and they always carry the same amount. No code path
here mutates one leg without the other; everything happens inside the
request's single database transaction, so a failure in the middle leaves
neither leg (nor either balance change) behind.

Credit-card payoff:
  pay_credit_card_installments is a transfer from a funding account to a
  card account for the sum of selected card installments. After the pair
  exists, every selected installment is stamped with the expense leg's id
  (paid_by_transfer_id). The stamp is a reconciliation marker; the
  installments were already paid (they hit the card balance at purchase
  time), so stamping never touches a balance. Stamped legs cannot be
  paid twice.

Lock ordering:
  Both accounts are locked in sorted UUID order (no-op on SQLite) so two
  concurrent transfers between the same accounts in opposite directions
  cannot deadlock.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import (
    AuthorizationError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from finledger.models.account import Account, CREDIT_CARD
from finledger.models.transaction import TransactionRecord, INCOME, EXPENSE
from finledger.services import card_purchase_service
from finledger.services.access import require_project_access
from finledger.services.category_service import (
    CARD_INTEREST_CATEGORY,
    TRANSFERS_CATEGORY,
    get_category,
    get_or_create_system_category,
)
from finledger.services.ledger import apply_transition, leg_state, money
from finledger.services.transaction_service import get_record

logger = logging.getLogger(__name__)


async def _lock_accounts(
    db: AsyncSession,
    user_id: uuid.UUID,
    first_account_id: uuid.UUID,
    second_account_id: uuid.UUID,
) -> tuple[Account, Account]:
    """
    Lock two accounts in sorted id order and verify the user owns both.

    Returns:
        The accounts in the order they were requested.
    """
    locked: dict[uuid.UUID, Account] = {}
    for account_id in sorted([first_account_id, second_account_id]):
        result = await db.execute(
            select(Account).where(Account.id == account_id).with_for_update()
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise NotFoundError("Account", account_id)
        if account.user_id != user_id:
            raise AuthorizationError("You do not have access to this account")
        locked[account_id] = account

    return locked[first_account_id], locked[second_account_id]


async def _create_pair(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    source: Account,
    destination: Account,
    amount: Decimal,
    transfer_date: date,
    description: str,
    notes: str | None,
) -> tuple[TransactionRecord, TransactionRecord]:
    """Insert both legs, link them, and apply both balance deltas."""
    category = await get_or_create_system_category(db, project_id, TRANSFERS_CATEGORY)
    now = datetime.now(timezone.utc)

    out_leg = TransactionRecord(
        project_id=project_id,
        user_id=user_id,
        account_id=source.id,
        category_id=category.id,
        type=EXPENSE,
        amount=amount,
        date=transfer_date,
        description=f"{description} → {destination.name}",
        notes=notes,
        is_paid=True,
        paid_at=now,
    )
    in_leg = TransactionRecord(
        project_id=project_id,
        user_id=user_id,
        account_id=destination.id,
        category_id=category.id,
        type=INCOME,
        amount=amount,
        date=transfer_date,
        description=f"{description} ← {source.name}",
        notes=notes,
        is_paid=True,
        paid_at=now,
    )
    db.add_all([out_leg, in_leg])
    await db.flush()

    # Link after both rows exist so neither FK points at a missing row
    out_leg.linked_transaction_id = in_leg.id
    in_leg.linked_transaction_id = out_leg.id
    await db.flush()

    await apply_transition(db, None, leg_state(out_leg))
    await apply_transition(db, None, leg_state(in_leg))
    return out_leg, in_leg


async def _load_pair(
    db: AsyncSession,
    project_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> tuple[TransactionRecord, TransactionRecord]:
    """
    Load both legs of a transfer from either leg's id.

    Returns:
        (expense leg, income leg)

    Raises:
        InvariantViolation: If the record is not a transfer leg.
    """
    leg = await get_record(db, project_id, transaction_id, lock=True)
    if leg.linked_transaction_id is None:
        raise InvariantViolation("Transaction is not part of a transfer")

    other = await get_record(db, project_id, leg.linked_transaction_id, lock=True)
    if leg.type == EXPENSE:
        return leg, other
    return other, leg


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

async def create_transfer(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    from_account_id: uuid.UUID,
    to_account_id: uuid.UUID,
    amount: Decimal,
    transfer_date: date,
    description: str | None = None,
    notes: str | None = None,
) -> tuple[TransactionRecord, TransactionRecord]:
    """
    Move money between two of the user's accounts.

    Args:
        db: Database session.
        project_id: Project the legs are recorded in.
        user_id: Authenticated user; must own both accounts.
        from_account_id: Source (gets the expense leg).
        to_account_id: Destination (gets the income leg).
        amount: Positive amount.
        transfer_date: Date of both legs.
        description: Base narrative, decorated with the other account's name.
        notes: Copied onto both legs.

    Returns:
        Tuple of (expense_leg, income_leg).

    Raises:
        InvariantViolation: If source and destination are the same account.
        ValidationError: If the amount is not positive.
        NotFoundError / AuthorizationError: Missing or foreign account.
    """
    await require_project_access(db, project_id, user_id)

    if from_account_id == to_account_id:
        raise InvariantViolation("Source and destination accounts must be different")
    if money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")

    source, destination = await _lock_accounts(db, user_id, from_account_id, to_account_id)

    out_leg, in_leg = await _create_pair(
        db,
        project_id,
        user_id,
        source,
        destination,
        money(amount),
        transfer_date,
        description or "Transfer",
        notes,
    )

    logger.info(
        "transfer_created",
        extra={
            "project_id": str(project_id),
            "out_leg_id": str(out_leg.id),
            "in_leg_id": str(in_leg.id),
            "amount": str(out_leg.amount),
        },
    )
    return out_leg, in_leg


async def update_transfer(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    updates: dict,
) -> tuple[TransactionRecord, TransactionRecord]:
    """
    Edit amount, date, description, notes, category or entity of a
    transfer (either leg id).

    Both legs' old deltas are reverted and the new ones applied, always
    together.

    Raises:
        InvariantViolation: Not a transfer, or changing the amount of a
            card payoff whose installments are already stamped.
    """
    await require_project_access(db, project_id, user_id)
    out_leg, in_leg = await _load_pair(db, project_id, transaction_id)

    if updates.get("category_id") is not None:
        await get_category(db, project_id, updates["category_id"])

    if "amount" in updates:
        if money(updates["amount"]) <= 0:
            raise ValidationError("Amount must be greater than 0")
        if money(updates["amount"]) != money(out_leg.amount):
            stamped = await db.execute(
                select(TransactionRecord.id)
                .where(TransactionRecord.paid_by_transfer_id == out_leg.id)
                .limit(1)
            )
            if stamped.scalar_one_or_none() is not None:
                raise InvariantViolation(
                    "The amount of a credit card payment cannot be changed"
                )

    old_out, old_in = leg_state(out_leg), leg_state(in_leg)

    for leg in (out_leg, in_leg):
        if "amount" in updates:
            leg.amount = money(updates["amount"])
        if updates.get("date") is not None:
            leg.date = updates["date"]
        if "notes" in updates:
            leg.notes = updates["notes"]
        if "category_id" in updates:
            leg.category_id = updates["category_id"]
        if "entity_id" in updates:
            leg.entity_id = updates["entity_id"]

    if updates.get("description"):
        source = await db.get(Account, out_leg.account_id)
        destination = await db.get(Account, in_leg.account_id)
        out_leg.description = f"{updates['description']} → {destination.name}"
        in_leg.description = f"{updates['description']} ← {source.name}"

    await db.flush()

    await apply_transition(db, old_out, leg_state(out_leg))
    await apply_transition(db, old_in, leg_state(in_leg))

    logger.info(
        "transfer_updated",
        extra={"out_leg_id": str(out_leg.id), "fields": sorted(updates.keys())},
    )
    return out_leg, in_leg


async def delete_transfer(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> None:
    """
    Delete both legs of a transfer, reverting both balance deltas.

    If the transfer was a card payoff, the installments it reconciled lose
    their stamp and become payable again.
    """
    await require_project_access(db, project_id, user_id)
    out_leg, in_leg = await _load_pair(db, project_id, transaction_id)

    stamped = await db.execute(
        select(TransactionRecord).where(TransactionRecord.paid_by_transfer_id == out_leg.id)
    )
    stamped_legs = list(stamped.scalars().all())
    purchase_ids = {leg.card_purchase_id for leg in stamped_legs if leg.card_purchase_id}
    for leg in stamped_legs:
        leg.paid_by_transfer_id = None
        # Purchase installments carry no payment time of their own
        if leg.card_purchase_id is not None:
            leg.paid_at = None

    await apply_transition(db, leg_state(out_leg), None)
    await apply_transition(db, leg_state(in_leg), None)

    # Break the mutual FK before deleting either row
    out_leg.linked_transaction_id = None
    in_leg.linked_transaction_id = None
    await db.flush()

    await db.delete(out_leg)
    await db.delete(in_leg)
    await db.flush()

    if purchase_ids:
        await card_purchase_service.refresh_purchase_status(db, purchase_ids)

    logger.info(
        "transfer_deleted",
        extra={"out_leg_id": str(out_leg.id), "unstamped": len(stamped_legs)},
    )


# ---------------------------------------------------------------------------
# Credit-card payoff
# ---------------------------------------------------------------------------

async def pay_credit_card_installments(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    source_account_id: uuid.UUID,
    card_account_id: uuid.UUID,
    transaction_ids: list[uuid.UUID],
    payment_date: date,
    description: str | None = None,
    notes: str | None = None,
    interest_amount: Decimal | None = None,
    interest_category_id: uuid.UUID | None = None,
    interest_description: str | None = None,
) -> dict:
    """
    Pay selected card installments from a funding account.

    Steps (one store transaction):
      1. Validate accounts and selected legs.
      2. Create the transfer pair for the sum of the selected amounts.
      3. Optionally post interest/fees as a standalone paid expense on the
         source account (not linked, not part of reconciliation).
      4. Stamp every selected leg with the expense leg's id.
      5. Deactivate every card purchase whose installments are now all
         reconciled.

    Returns:
        Dict with transfer_id, income_leg_id, total_paid, interest_paid,
        installments_paid.

    Raises:
        InvariantViolation: Same account on both sides, or any selected leg
            already reconciled (or settled as historical debt).
        ValidationError: Card account is not a credit card, empty selection,
            or a selected record is not a paid card expense.
        NotFoundError: A selected id is not a record of this card in this
            project.
    """
    await require_project_access(db, project_id, user_id)

    if source_account_id == card_account_id:
        raise InvariantViolation("Source account and credit card must be different")

    selected_ids = set(transaction_ids)
    if not selected_ids:
        raise ValidationError("Select at least one installment to pay")

    source, card = await _lock_accounts(db, user_id, source_account_id, card_account_id)
    if card.type != CREDIT_CARD:
        raise ValidationError(f"Account {card.name} is not a credit card")

    result = await db.execute(
        select(TransactionRecord)
        .where(
            TransactionRecord.id.in_(selected_ids),
            TransactionRecord.project_id == project_id,
            TransactionRecord.account_id == card.id,
        )
        .with_for_update()
    )
    legs = list(result.scalars().all())

    missing = selected_ids - {leg.id for leg in legs}
    if missing:
        raise NotFoundError(
            "Card installment", ", ".join(sorted(str(txn_id) for txn_id in missing))
        )
    if any(leg.paid_by_transfer_id is not None for leg in legs):
        raise InvariantViolation("Some selected installments were already paid")
    if any(leg.is_historically_paid for leg in legs):
        raise InvariantViolation(
            "Some selected installments are already settled as historical debt"
        )
    if any(leg.type != EXPENSE or not leg.is_paid for leg in legs):
        raise ValidationError("Only card expenses can be paid off")

    total = money(sum((leg.amount for leg in legs), Decimal("0")))

    out_leg, in_leg = await _create_pair(
        db,
        project_id,
        user_id,
        source,
        card,
        total,
        payment_date,
        description or "Credit card payment",
        notes,
    )

    interest = money(interest_amount) if interest_amount else Decimal("0.00")
    if interest > 0:
        if interest_category_id is not None:
            category = await get_category(db, project_id, interest_category_id)
        else:
            category = await get_or_create_system_category(
                db, project_id, CARD_INTEREST_CATEGORY
            )
        interest_txn = TransactionRecord(
            project_id=project_id,
            user_id=user_id,
            account_id=source.id,
            category_id=category.id,
            type=EXPENSE,
            amount=interest,
            date=payment_date,
            description=interest_description or f"Interest & fees - {card.name}",
            notes=notes,
            is_paid=True,
            paid_at=datetime.now(timezone.utc),
        )
        db.add(interest_txn)
        await db.flush()
        await apply_transition(db, None, leg_state(interest_txn))

    # Reconciliation stamp only: the legs were already paid
    now = datetime.now(timezone.utc)
    await db.execute(
        update(TransactionRecord)
        .where(TransactionRecord.id.in_(selected_ids))
        .values(
            paid_by_transfer_id=out_leg.id,
            paid_at=func.coalesce(TransactionRecord.paid_at, now),
        )
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()

    purchase_ids = {leg.card_purchase_id for leg in legs if leg.card_purchase_id}
    if purchase_ids:
        await card_purchase_service.refresh_purchase_status(db, purchase_ids)

    logger.info(
        "credit_card_paid",
        extra={
            "project_id": str(project_id),
            "card_account_id": str(card.id),
            "transfer_id": str(out_leg.id),
            "total_paid": str(total),
            "interest_paid": str(interest),
            "installments_paid": len(legs),
        },
    )
    return {
        "transfer_id": out_leg.id,
        "income_leg_id": in_leg.id,
        "total_paid": total,
        "interest_paid": interest,
        "installments_paid": len(legs),
    }


async def set_historically_paid(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    transaction_ids: list[uuid.UUID],
    is_historically_paid: bool,
) -> int:
    """
    Flag (or unflag) records as pre-existing debt settled outside the app.

    Reconciled legs are left alone: a real payment already settled them.

    Returns:
        Number of records updated.
    """
    await require_project_access(db, project_id, user_id)

    if not transaction_ids:
        raise ValidationError("Select at least one transaction")

    result = await db.execute(
        update(TransactionRecord)
        .where(
            TransactionRecord.id.in_(set(transaction_ids)),
            TransactionRecord.project_id == project_id,
            TransactionRecord.paid_by_transfer_id.is_(None),
        )
        .values(is_historically_paid=is_historically_paid)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount
