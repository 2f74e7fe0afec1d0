"""
Savings service — funds and their deposit/withdrawal movements.

A fund's current_balance is never edited directly. Every movement write
re-derives it as deposits minus withdrawals, so it cannot drift from the
movement history.
"""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import InvariantViolation, NotFoundError, ValidationError
from finledger.models.savings import SavingsFund, SavingsMovement, DEPOSIT, WITHDRAWAL
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.ledger import money


async def create_fund(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    target_amount: Decimal | None = None,
) -> SavingsFund:
    await require_project_access(db, project_id, user_id)

    fund = SavingsFund(
        project_id=project_id,
        user_id=user_id,
        name=name,
        target_amount=money(target_amount) if target_amount is not None else None,
        current_balance=Decimal("0.00"),
    )
    db.add(fund)
    await db.flush()
    return fund


async def get_funds(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    include_archived: bool = False,
) -> list[SavingsFund]:
    await require_project_access(db, project_id, user_id)

    query = (
        select(SavingsFund)
        .where(SavingsFund.project_id == project_id)
        .order_by(SavingsFund.created_at.asc())
    )
    if not include_archived:
        query = query.where(SavingsFund.is_archived.is_(False))

    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_fund(
    db: AsyncSession,
    project_id: uuid.UUID,
    fund_id: uuid.UUID,
) -> SavingsFund:
    result = await db.execute(
        select(SavingsFund).where(
            SavingsFund.id == fund_id,
            SavingsFund.project_id == project_id,
        )
    )
    fund = result.scalar_one_or_none()
    if fund is None:
        raise NotFoundError("Savings fund", fund_id)
    return fund


async def _fund_balance(db: AsyncSession, fund_id: uuid.UUID) -> Decimal:
    signed_amount = case(
        (SavingsMovement.type == DEPOSIT, SavingsMovement.amount),
        else_=-SavingsMovement.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0))
        .where(SavingsMovement.savings_fund_id == fund_id)
    )
    return money(result.scalar())


async def create_movement(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    fund_id: uuid.UUID,
    movement_type: str,
    amount: Decimal,
    movement_date: date,
    description: str | None = None,
) -> SavingsMovement:
    """
    Record a deposit or withdrawal and refresh the fund balance.

    Raises:
        ValidationError: Unknown type or non-positive amount.
        InvariantViolation: A withdrawal larger than the fund balance.
    """
    await require_project_access(db, project_id, user_id)

    if movement_type not in (DEPOSIT, WITHDRAWAL):
        raise ValidationError("Movement type must be 'deposit' or 'withdrawal'")
    if money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")

    fund = await _get_fund(db, project_id, fund_id)
    if fund.is_archived:
        raise InvariantViolation("Cannot move money in an archived fund")

    balance = await _fund_balance(db, fund.id)
    if movement_type == WITHDRAWAL and money(amount) > balance:
        raise InvariantViolation(
            f"Insufficient savings. Available: {balance}, requested: {money(amount)}"
        )

    movement = SavingsMovement(
        savings_fund_id=fund.id,
        type=movement_type,
        amount=money(amount),
        date=movement_date,
        description=description,
    )
    db.add(movement)
    await db.flush()

    fund.current_balance = await _fund_balance(db, fund.id)
    await db.flush()
    return movement


async def get_movements(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    fund_id: uuid.UUID,
) -> list[SavingsMovement]:
    """A fund's movements, newest first."""
    await require_project_access(db, project_id, user_id)
    fund = await _get_fund(db, project_id, fund_id)

    result = await db.execute(
        select(SavingsMovement)
        .where(SavingsMovement.savings_fund_id == fund.id)
        .order_by(SavingsMovement.date.desc(), SavingsMovement.created_at.desc())
    )
    return list(result.scalars().all())


async def sum_deposits(
    db: AsyncSession,
    project_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> Decimal:
    """Deposits into any of the project's funds dated within [start, end]."""
    result = await db.execute(
        select(func.coalesce(func.sum(SavingsMovement.amount), 0))
        .join(SavingsFund, SavingsMovement.savings_fund_id == SavingsFund.id)
        .where(
            SavingsFund.project_id == project_id,
            SavingsMovement.type == DEPOSIT,
            SavingsMovement.date >= start_date,
            SavingsMovement.date <= end_date,
        )
    )
    return money(result.scalar())


async def get_savings_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """Total saved and total target across active funds; zeroed without access."""
    summary = {
        "total_funds": 0,
        "total_saved": Decimal("0.00"),
        "total_target": Decimal("0.00"),
    }
    if not await verify_project_access(db, project_id, user_id):
        return summary

    for fund in await get_funds(db, project_id, user_id):
        summary["total_funds"] += 1
        summary["total_saved"] += money(fund.current_balance)
        if fund.target_amount is not None:
            summary["total_target"] += money(fund.target_amount)
    return summary
