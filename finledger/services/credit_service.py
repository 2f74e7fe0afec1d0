"""
Credit service — loans repaid in fixed installments.

Lazy generation:
  A credit does not expand into legs when it is created. Installment legs
  are generated on demand as UNPAID expenses (one at a time, all remaining
  at once, or by the billing cycle that covers their due date) and paid
  later through the normal toggle. The k-th generated leg always takes
  schedule index k, so legs are numbered in the order they are generated.

  The only exception is an imported credit: create_credit can record a
  number of installments that were paid before the credit entered the
  app. Those are inserted as paid legs at their historical due dates and
  move the paying account's balance like any other paid expense.

Progress:
  paid installments = count of the credit's legs with is_paid = true
  paid amount       = sum of those legs
"""

import logging
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import InvariantViolation, NotFoundError, ValidationError
from finledger.models.credit import Credit, FREQUENCIES
from finledger.models.transaction import TransactionRecord, EXPENSE
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.account_service import get_account
from finledger.services.category_service import get_category
from finledger.services.ledger import apply_transition, leg_state, money
from finledger.services.schedule import (
    MONTHLY,
    count_past_due,
    due_date,
    schedule_end_date,
)

logger = logging.getLogger(__name__)


def calculate_paid_installments(
    start_date: date,
    frequency: str,
    installments: int,
    today: date | None = None,
) -> int:
    """
    How many installments of a plan are already due.

    Used to pre-fill paid_installments when importing an existing loan.
    """
    return count_past_due(start_date, frequency, installments, today)


def _installment_leg(credit: Credit, index: int, is_paid: bool = False) -> TransactionRecord:
    due = due_date(credit.start_date, credit.frequency, index)
    return TransactionRecord(
        project_id=credit.project_id,
        user_id=credit.user_id,
        account_id=credit.account_id,
        category_id=credit.category_id,
        entity_id=credit.entity_id,
        credit_id=credit.id,
        type=EXPENSE,
        amount=money(credit.installment_amount),
        date=due,
        description=f"{credit.name} - Installment {index + 1}/{credit.installments}",
        is_paid=is_paid,
        paid_at=datetime.combine(due, time.min, tzinfo=timezone.utc) if is_paid else None,
    )


async def _get_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    credit_id: uuid.UUID,
) -> Credit:
    result = await db.execute(
        select(Credit).where(Credit.id == credit_id, Credit.project_id == project_id)
    )
    credit = result.scalar_one_or_none()
    if credit is None:
        raise NotFoundError("Credit", credit_id)
    return credit


async def generated_count(db: AsyncSession, credit_id: uuid.UUID) -> int:
    """Number of installment legs that exist for a credit, paid or not."""
    result = await db.execute(
        select(func.count(TransactionRecord.id)).where(TransactionRecord.credit_id == credit_id)
    )
    return result.scalar_one()


async def _paid_stats(
    db: AsyncSession,
    credit_ids: list[uuid.UUID],
) -> dict[uuid.UUID, tuple[int, Decimal]]:
    if not credit_ids:
        return {}

    result = await db.execute(
        select(
            TransactionRecord.credit_id,
            func.count(TransactionRecord.id),
            func.coalesce(func.sum(TransactionRecord.amount), 0),
        )
        .where(
            TransactionRecord.credit_id.in_(credit_ids),
            TransactionRecord.is_paid.is_(True),
        )
        .group_by(TransactionRecord.credit_id)
    )
    return {credit_id: (count, money(total)) for credit_id, count, total in result.all()}


def _with_progress(credit: Credit, paid_count: int, paid_amount: Decimal) -> dict:
    total = money(credit.total_amount)
    remaining = max(0, credit.installments - paid_count)

    data = {column.key: getattr(credit, column.key) for column in Credit.__table__.columns}
    data.update(
        paid_installments=paid_count,
        remaining_installments=remaining,
        paid_amount=paid_amount,
        remaining_amount=max(Decimal("0.00"), total - paid_amount),
        progress_percentage=round(paid_amount / total * 100) if total > 0 else 0,
        next_payment_date=(
            due_date(credit.start_date, credit.frequency, paid_count) if remaining > 0 else None
        ),
        calculated_paid_installments=calculate_paid_installments(
            credit.start_date, credit.frequency, credit.installments
        ),
    )
    return data


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    principal_amount: Decimal,
    installment_amount: Decimal,
    installments: int,
    start_date: date,
    frequency: str = MONTHLY,
    category_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
    entity_id: uuid.UUID | None = None,
    description: str | None = None,
    notes: str | None = None,
    paid_installments: int | None = None,
) -> Credit:
    """
    Create a credit, optionally with installments already paid.

    Args:
        db: Database session.
        project_id: Owning project.
        user_id: Authenticated user.
        name: Display name, reused in installment descriptions.
        principal_amount: Amount borrowed.
        installment_amount: Fixed amount of every installment.
        installments: Number of installments.
        start_date: Due date of the first installment.
        frequency: "weekly", "biweekly" or "monthly".
        category_id: Optional category of this project.
        account_id: Account installments are paid from (must be the
            caller's); without one, legs never touch a balance.
        entity_id: Optional opaque lender reference.
        description: Free text.
        notes: Free text.
        paid_installments: Installments paid before the credit was
            recorded; inserted as paid legs at their due dates.

    Returns:
        The created Credit.

    Raises:
        ValidationError: Bad frequency, counts or amounts.
    """
    await require_project_access(db, project_id, user_id)

    if frequency not in FREQUENCIES:
        raise ValidationError(f"Frequency must be one of: {', '.join(FREQUENCIES)}")
    if installments < 1:
        raise ValidationError("Installments must be at least 1")
    if money(principal_amount) <= 0 or money(installment_amount) <= 0:
        raise ValidationError("Amounts must be greater than 0")

    paid_installments = paid_installments or 0
    if paid_installments < 0 or paid_installments > installments:
        raise ValidationError("Paid installments cannot exceed the number of installments")

    if category_id is not None:
        await get_category(db, project_id, category_id)
    if account_id is not None:
        await get_account(db, account_id, user_id)

    credit = Credit(
        project_id=project_id,
        user_id=user_id,
        category_id=category_id,
        account_id=account_id,
        entity_id=entity_id,
        name=name,
        description=description,
        principal_amount=money(principal_amount),
        installment_amount=money(installment_amount),
        installments=installments,
        total_amount=money(installment_amount) * installments,
        start_date=start_date,
        end_date=schedule_end_date(start_date, frequency, installments),
        frequency=frequency,
        notes=notes,
    )
    db.add(credit)
    await db.flush()

    legs = [_installment_leg(credit, i, is_paid=True) for i in range(paid_installments)]
    if legs:
        db.add_all(legs)
        await db.flush()
        for leg in legs:
            await apply_transition(db, None, leg_state(leg))

    logger.info(
        "credit_created",
        extra={
            "project_id": str(project_id),
            "credit_id": str(credit.id),
            "installments": installments,
            "paid_installments": paid_installments,
        },
    )
    return credit


async def generate_next_installment(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
) -> TransactionRecord:
    """
    Insert the next unpaid installment leg at its due date.

    No balance effect until the leg is toggled paid.

    Raises:
        InvariantViolation: If every installment already has a leg, or the
            credit is archived.
    """
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)
    if credit.is_archived:
        raise InvariantViolation("Cannot generate installments for an archived credit")

    existing = await generated_count(db, credit.id)
    if existing >= credit.installments:
        raise InvariantViolation("All installments of this credit have already been generated")

    leg = _installment_leg(credit, existing)
    db.add(leg)
    await db.flush()
    return leg


async def generate_all_remaining_installments(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
) -> int:
    """Insert every missing installment leg. Returns how many were created."""
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)
    if credit.is_archived:
        raise InvariantViolation("Cannot generate installments for an archived credit")

    existing = await generated_count(db, credit.id)
    legs = [_installment_leg(credit, i) for i in range(existing, credit.installments)]
    db.add_all(legs)
    await db.flush()
    return len(legs)


async def update_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
    updates: dict,
) -> Credit:
    """Partial update of name, description, category, entity and notes."""
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)

    if updates.get("category_id") is not None:
        await get_category(db, project_id, updates["category_id"])

    for field, value in updates.items():
        setattr(credit, field, value)

    await db.flush()
    return credit


async def archive_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
    is_archived: bool = True,
) -> Credit:
    """Archive or restore a credit."""
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)
    credit.is_archived = is_archived
    await db.flush()
    return credit


async def delete_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
) -> None:
    """Delete a credit and all its legs, reverting the ones that were paid."""
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)

    result = await db.execute(
        select(TransactionRecord).where(TransactionRecord.credit_id == credit.id)
    )
    for leg in result.scalars().all():
        await apply_transition(db, leg_state(leg), None)

    await db.execute(
        delete(TransactionRecord)
        .where(TransactionRecord.credit_id == credit.id)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(credit)
    await db.flush()

    logger.info("credit_deleted", extra={"credit_id": str(credit_id)})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_credits(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    include_archived: bool = False,
) -> list[dict]:
    """List credits with progress, newest first."""
    await require_project_access(db, project_id, user_id)

    query = select(Credit).where(Credit.project_id == project_id)
    if not include_archived:
        query = query.where(Credit.is_archived.is_(False))
    query = query.order_by(Credit.created_at.desc())

    credits = list((await db.execute(query)).scalars().all())
    stats = await _paid_stats(db, [c.id for c in credits])
    return [
        _with_progress(c, *stats.get(c.id, (0, Decimal("0.00"))))
        for c in credits
    ]


async def get_credit(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    credit_id: uuid.UUID,
) -> dict:
    await require_project_access(db, project_id, user_id)
    credit = await _get_credit(db, project_id, credit_id)
    stats = await _paid_stats(db, [credit.id])
    return _with_progress(credit, *stats.get(credit.id, (0, Decimal("0.00"))))


async def get_credit_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Totals over the project's non-archived credits.

    monthly_payment only counts monthly credits that still have
    installments left. Zeroed when the caller has no access.
    """
    summary = {
        "total_credits": 0,
        "active_credits": 0,
        "total_debt": Decimal("0.00"),
        "total_paid": Decimal("0.00"),
        "total_remaining": Decimal("0.00"),
        "monthly_payment": Decimal("0.00"),
    }
    if not await verify_project_access(db, project_id, user_id):
        return summary

    credits = await get_credits(db, project_id, user_id)
    summary["total_credits"] = len(credits)

    for credit in credits:
        summary["total_debt"] += money(credit["total_amount"])
        summary["total_paid"] += credit["paid_amount"]
        if credit["remaining_installments"] > 0:
            summary["active_credits"] += 1
            if credit["frequency"] == MONTHLY:
                summary["monthly_payment"] += money(credit["installment_amount"])

    summary["total_remaining"] = summary["total_debt"] - summary["total_paid"]
    return summary
