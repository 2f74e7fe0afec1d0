"""
Ledger core: signed deltas and the atomic balance update.

Every change to an account's running balance in this code base flows
through two functions:

  - delta_for(type, amount): the ONLY definition of how a record moves a
    balance (income +amount, expense -amount).
  - apply_transition(db, old, new): given the balance-relevant state of a
    record before and after a mutation, reverts the old contribution and
    applies the new one. Create is (None -> new), delete is (old -> None),
    update and toggle are (old -> new).

A record contributes to a balance only when it is paid AND sits on an
account. apply_transition nets both sides per account and skips zero
deltas, so a mutation that does not change what is accounted for never
touches the accounts table.

Atomicity:
  adjust_balance issues a single UPDATE ... SET current_balance =
  current_balance + :delta. The read-modify-write happens inside the
  database, so two requests adjusting the same account concurrently
  cannot lose an update. Callers run inside the request's session
  transaction; if anything later in the request fails, get_db rolls the
  adjustment back together with the record writes.
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import NotFoundError
from finledger.models.account import Account
from finledger.models.transaction import TransactionRecord, INCOME, EXPENSE


CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Normalize a number (or SQL aggregate result) to a 2-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def delta_for(txn_type: str, amount: Decimal) -> Decimal:
    """
    Signed balance effect of a paid record.

    Raises:
        ValueError: If the type is neither income nor expense.
    """
    if txn_type == INCOME:
        return money(amount)
    if txn_type == EXPENSE:
        return -money(amount)
    raise ValueError(f"Unknown transaction type: {txn_type}")


class LegState(NamedTuple):
    """The balance-relevant part of a transaction record."""
    account_id: uuid.UUID | None
    type: str
    amount: Decimal
    is_paid: bool


def leg_state(txn: TransactionRecord) -> LegState:
    """Snapshot a record's balance-relevant fields before mutating it."""
    return LegState(
        account_id=txn.account_id,
        type=txn.type,
        amount=txn.amount,
        is_paid=txn.is_paid,
    )


def transition_deltas(old: LegState | None, new: LegState | None) -> dict[uuid.UUID, Decimal]:
    """
    Net per-account deltas for moving a record from ``old`` to ``new``.

    Pure: no I/O. Accounts whose net delta is zero are omitted.
    """
    deltas: dict[uuid.UUID, Decimal] = {}

    if old is not None and old.is_paid and old.account_id is not None:
        deltas[old.account_id] = deltas.get(old.account_id, Decimal("0")) - delta_for(
            old.type, old.amount
        )
    if new is not None and new.is_paid and new.account_id is not None:
        deltas[new.account_id] = deltas.get(new.account_id, Decimal("0")) + delta_for(
            new.type, new.amount
        )

    return {account_id: delta for account_id, delta in deltas.items() if delta != 0}


async def adjust_balance(db: AsyncSession, account_id: uuid.UUID, delta: Decimal) -> None:
    """
    Atomically add ``delta`` to an account's running balance.

    Raises:
        NotFoundError: If the account does not exist.
    """
    if delta == 0:
        return

    result = await db.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(current_balance=Account.current_balance + money(delta))
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        raise NotFoundError("Account", account_id)


async def apply_transition(
    db: AsyncSession,
    old: LegState | None,
    new: LegState | None,
) -> None:
    """
    Apply the balance effect of a record moving from ``old`` to ``new``.

    Accounts are adjusted in sorted id order so concurrent transitions
    touching the same pair of accounts take row locks consistently.
    """
    deltas = transition_deltas(old, new)
    for account_id in sorted(deltas):
        await adjust_balance(db, account_id, deltas[account_id])


async def compute_balance(db: AsyncSession, account: Account) -> Decimal:
    """
    Recompute a balance from scratch: initial balance plus paid legs.

    Only used to verify the incrementally maintained current_balance.
    """
    signed_amount = case(
        (TransactionRecord.type == INCOME, TransactionRecord.amount),
        else_=-TransactionRecord.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0))
        .where(
            TransactionRecord.account_id == account.id,
            TransactionRecord.is_paid.is_(True),
        )
    )
    return money(account.initial_balance) + money(result.scalar())
