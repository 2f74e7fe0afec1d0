"""
Budget service — monthly spending limits per category.

Reads report each budget against what was actually spent: the sum of the
month's expense records in the budget's category, paid or not (the same
rule billing cycle totals use).
"""

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import InvariantViolation, NotFoundError, ValidationError
from finledger.models.budget import Budget
from finledger.models.transaction import TransactionRecord, EXPENSE
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.category_service import get_category
from finledger.services.ledger import money
from finledger.services.schedule import add_months

logger = logging.getLogger(__name__)


def month_range(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    first = date(year, month, 1)
    return first, add_months(first, 1) - timedelta(days=1)


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def _validate_amount(amount: Decimal) -> Decimal:
    if money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")
    return money(amount)


async def _get_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    budget_id: uuid.UUID,
) -> Budget:
    result = await db.execute(
        select(Budget).where(
            Budget.id == budget_id,
            Budget.project_id == project_id,
        )
    )
    budget = result.scalar_one_or_none()
    if budget is None:
        raise NotFoundError("Budget", budget_id)
    return budget


async def _find_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    category_id: uuid.UUID,
    year: int,
    month: int,
) -> Budget | None:
    result = await db.execute(
        select(Budget).where(
            Budget.project_id == project_id,
            Budget.category_id == category_id,
            Budget.year == year,
            Budget.month == month,
        )
    )
    return result.scalar_one_or_none()


async def create_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    year: int,
    month: int,
    amount: Decimal,
) -> Budget:
    """
    Create the budget of a category for one month.

    Raises:
        NotFoundError: Category not in this project.
        InvariantViolation: The category already has a budget that month.
    """
    await require_project_access(db, project_id, user_id)
    amount = _validate_amount(amount)
    month_range(year, month)
    await get_category(db, project_id, category_id)

    if await _find_budget(db, project_id, category_id, year, month) is not None:
        raise InvariantViolation("A budget already exists for this category in this period")

    budget = Budget(
        project_id=project_id,
        category_id=category_id,
        year=year,
        month=month,
        amount=amount,
    )
    db.add(budget)
    await db.flush()
    return budget


async def update_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    budget_id: uuid.UUID,
    amount: Decimal,
) -> Budget:
    await require_project_access(db, project_id, user_id)
    budget = await _get_budget(db, project_id, budget_id)
    budget.amount = _validate_amount(amount)
    await db.flush()
    return budget


async def upsert_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    year: int,
    month: int,
    amount: Decimal,
) -> Budget:
    """Set the amount of a category's budget for the month, creating it if needed."""
    await require_project_access(db, project_id, user_id)
    existing = await _find_budget(db, project_id, category_id, year, month)
    if existing is None:
        return await create_budget(db, project_id, user_id, category_id, year, month, amount)

    existing.amount = _validate_amount(amount)
    await db.flush()
    return existing


async def delete_budget(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    budget_id: uuid.UUID,
) -> None:
    await require_project_access(db, project_id, user_id)
    budget = await _get_budget(db, project_id, budget_id)
    await db.delete(budget)
    await db.flush()


async def copy_from_previous_month(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    year: int,
    month: int,
) -> int:
    """
    Copy last month's budgets into (year, month).

    Categories that already have a budget in the target month keep it.
    Returns how many budgets were created.

    Raises:
        NotFoundError: The previous month has no budgets.
    """
    await require_project_access(db, project_id, user_id)
    month_range(year, month)
    prev_year, prev_month = previous_month(year, month)

    result = await db.execute(
        select(Budget).where(
            Budget.project_id == project_id,
            Budget.year == prev_year,
            Budget.month == prev_month,
        )
    )
    previous = list(result.scalars().all())
    if not previous:
        raise NotFoundError(f"Budgets for {prev_year}-{prev_month:02d}")

    result = await db.execute(
        select(Budget.category_id).where(
            Budget.project_id == project_id,
            Budget.year == year,
            Budget.month == month,
        )
    )
    taken = set(result.scalars().all())

    created = [
        Budget(
            project_id=project_id,
            category_id=budget.category_id,
            year=year,
            month=month,
            amount=budget.amount,
        )
        for budget in previous
        if budget.category_id not in taken
    ]
    db.add_all(created)
    await db.flush()

    logger.info(
        "budgets_copied",
        extra={
            "project_id": str(project_id),
            "period": f"{year}-{month:02d}",
            "count": len(created),
        },
    )
    return len(created)


async def get_budgets(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    year: int,
    month: int,
) -> list[dict]:
    """
    The month's budgets with actual spending.

    Each entry adds spent, remaining (negative when overspent),
    percentage_used (rounded) and is_over_budget. Empty without access.
    """
    if not await verify_project_access(db, project_id, user_id):
        return []

    start, end = month_range(year, month)
    result = await db.execute(
        select(Budget).where(
            Budget.project_id == project_id,
            Budget.year == year,
            Budget.month == month,
        )
    )
    budgets = list(result.scalars().all())
    if not budgets:
        return []

    result = await db.execute(
        select(TransactionRecord.category_id, func.sum(TransactionRecord.amount))
        .where(
            TransactionRecord.project_id == project_id,
            TransactionRecord.type == EXPENSE,
            TransactionRecord.category_id.in_([b.category_id for b in budgets]),
            TransactionRecord.date >= start,
            TransactionRecord.date <= end,
        )
        .group_by(TransactionRecord.category_id)
    )
    spent_by_category = {category_id: money(total) for category_id, total in result.all()}

    report = []
    for budget in budgets:
        amount = money(budget.amount)
        spent = spent_by_category.get(budget.category_id, Decimal("0.00"))
        report.append({
            "id": budget.id,
            "project_id": budget.project_id,
            "category_id": budget.category_id,
            "year": budget.year,
            "month": budget.month,
            "amount": amount,
            "spent": spent,
            "remaining": amount - spent,
            "percentage_used": round(spent / amount * 100),
            "is_over_budget": spent > amount,
        })
    return sorted(report, key=lambda entry: entry["amount"], reverse=True)
