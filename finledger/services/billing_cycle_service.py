"""
Billing cycle service — a project's accounting periods.

State machine:

    create ─▶ open ──close──▶ closed ──reopen──▶ open
                                │
                                └──recalculate──▶ closed

  - At most one cycle per project is open at any time; create and reopen
    both refuse when another one is.
  - Closing freezes income, expenses, savings and balance into the
    snapshot_* columns. Reopening clears them and live totals resume.
  - Recalculate rebuilds the snapshot of a closed cycle from the current
    data, over the same date range. With unchanged data it reproduces the
    same values.

Totals over [start, end] (both inclusive):
    income   = Σ income records dated in range, paid or not
    expenses = Σ expense records dated in range, paid or not
    savings  = Σ deposits into the project's savings funds in range
    balance  = income - expenses - savings

Cycle creation loads the obligations that mature in it as unpaid records:
items of active templates (dated at the cycle start) and credit
installments whose due date falls in [start, end). Card purchase
installments already exist from purchase time and are not loaded.
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import InvariantViolation, NotFoundError, ValidationError
from finledger.models.billing_cycle import BillingCycle, OPEN, CLOSED
from finledger.models.credit import Credit
from finledger.models.transaction import TransactionRecord, INCOME, EXPENSE
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.credit_service import generated_count
from finledger.services.ledger import money
from finledger.services.savings_service import sum_deposits
from finledger.services.schedule import add_months, due_date
from finledger.services.template_service import get_loadable_items

logger = logging.getLogger(__name__)


async def _get_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    cycle_id: uuid.UUID,
) -> BillingCycle:
    result = await db.execute(
        select(BillingCycle).where(
            BillingCycle.id == cycle_id,
            BillingCycle.project_id == project_id,
        )
    )
    cycle = result.scalar_one_or_none()
    if cycle is None:
        raise NotFoundError("Billing cycle", cycle_id)
    return cycle


async def _open_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    exclude_id: uuid.UUID | None = None,
) -> BillingCycle | None:
    query = select(BillingCycle).where(
        BillingCycle.project_id == project_id,
        BillingCycle.status == OPEN,
    )
    if exclude_id is not None:
        query = query.where(BillingCycle.id != exclude_id)
    result = await db.execute(query.order_by(BillingCycle.start_date.desc()).limit(1))
    return result.scalar_one_or_none()


def _validate_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")


async def _compute_totals(
    db: AsyncSession,
    project_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> dict:
    """Income, expenses, savings and balance over [start_date, end_date]."""
    result = await db.execute(
        select(
            func.coalesce(
                func.sum(case((TransactionRecord.type == INCOME, TransactionRecord.amount), else_=0)),
                0,
            ),
            func.coalesce(
                func.sum(case((TransactionRecord.type == EXPENSE, TransactionRecord.amount), else_=0)),
                0,
            ),
        )
        .where(
            TransactionRecord.project_id == project_id,
            TransactionRecord.date >= start_date,
            TransactionRecord.date <= end_date,
        )
    )
    income, expenses = result.one()
    income = money(income)
    expenses = money(expenses)
    savings = await sum_deposits(db, project_id, start_date, end_date)

    return {
        "income": income,
        "expenses": expenses,
        "savings": savings,
        "balance": income - expenses - savings,
    }


def _apply_snapshot(cycle: BillingCycle, totals: dict) -> None:
    cycle.snapshot_income = totals["income"]
    cycle.snapshot_expenses = totals["expenses"]
    cycle.snapshot_savings = totals["savings"]
    cycle.snapshot_balance = totals["balance"]


def _clear_snapshot(cycle: BillingCycle) -> None:
    cycle.snapshot_income = None
    cycle.snapshot_expenses = None
    cycle.snapshot_savings = None
    cycle.snapshot_balance = None


async def _load_cycle_obligations(
    db: AsyncSession,
    project_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> int:
    """
    Insert unpaid records for template items and maturing credit installments.

    Returns how many records were created.
    """
    records = [
        TransactionRecord(
            project_id=project_id,
            user_id=item.user_id,
            account_id=item.account_id,
            category_id=item.category_id,
            entity_id=item.entity_id,
            type=item.type,
            amount=money(item.amount),
            date=start_date,
            description=item.description,
            notes=item.notes,
            is_paid=False,
        )
        for item in await get_loadable_items(db, project_id)
    ]

    result = await db.execute(
        select(Credit).where(
            Credit.project_id == project_id,
            Credit.is_archived.is_(False),
        )
    )
    for credit in result.scalars().all():
        existing = await generated_count(db, credit.id)
        for index in range(existing, credit.installments):
            due = due_date(credit.start_date, credit.frequency, index)
            # Leg k must be installment k; a credit behind schedule is caught
            # up with generate_next_installment instead.
            if due < start_date or due >= end_date:
                break
            records.append(
                TransactionRecord(
                    project_id=project_id,
                    user_id=credit.user_id,
                    account_id=credit.account_id,
                    category_id=credit.category_id,
                    entity_id=credit.entity_id,
                    credit_id=credit.id,
                    type=EXPENSE,
                    amount=money(credit.installment_amount),
                    date=due,
                    description=f"{credit.name} - Installment {index + 1}/{credit.installments}",
                    notes=credit.notes,
                    is_paid=False,
                )
            )

    db.add_all(records)
    await db.flush()
    return len(records)


def _with_totals(cycle: BillingCycle, totals: dict | None, today: date | None = None) -> dict:
    """Cycle fields plus current totals and day counters."""
    today = today or date.today()
    days_total = (cycle.end_date - cycle.start_date).days

    data = {column.key: getattr(cycle, column.key) for column in BillingCycle.__table__.columns}
    if cycle.status == CLOSED:
        data.update(
            current_income=money(cycle.snapshot_income),
            current_expenses=money(cycle.snapshot_expenses),
            current_savings=money(cycle.snapshot_savings),
            current_balance=money(cycle.snapshot_balance),
            days_total=days_total,
            days_elapsed=days_total,
            days_remaining=0,
        )
        return data

    days_elapsed = min(days_total, max(0, (today - cycle.start_date).days))
    data.update(
        current_income=totals["income"],
        current_expenses=totals["expenses"],
        current_savings=totals["savings"],
        current_balance=totals["balance"],
        days_total=days_total,
        days_elapsed=days_elapsed,
        days_remaining=max(0, days_total - days_elapsed),
    )
    return data


async def _enrich(db: AsyncSession, cycle: BillingCycle) -> dict:
    totals = None
    if cycle.status == OPEN:
        totals = await _compute_totals(db, cycle.project_id, cycle.start_date, cycle.end_date)
    return _with_totals(cycle, totals)


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------

async def create_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    start_date: date,
    end_date: date,
    notes: str | None = None,
) -> BillingCycle:
    """
    Open a new cycle and load the obligations maturing in it.

    Raises:
        ValidationError: If end_date is before start_date.
        InvariantViolation: If the project already has an open cycle.
    """
    await require_project_access(db, project_id, user_id)
    _validate_range(start_date, end_date)

    if await _open_cycle(db, project_id) is not None:
        raise InvariantViolation(
            "There is already an open billing cycle. Close it before creating a new one."
        )

    cycle = BillingCycle(
        project_id=project_id,
        name=name,
        start_date=start_date,
        end_date=end_date,
        status=OPEN,
        notes=notes,
    )
    db.add(cycle)
    await db.flush()

    loaded = await _load_cycle_obligations(db, project_id, start_date, end_date)

    logger.info(
        "billing_cycle_created",
        extra={
            "project_id": str(project_id),
            "billing_cycle_id": str(cycle.id),
            "loaded_transactions": loaded,
        },
    )
    return cycle


async def update_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
    updates: dict,
) -> BillingCycle:
    """
    Partial update of name, dates and notes.

    Raises:
        InvariantViolation: If the cycle is closed.
        ValidationError: If the resulting range is inverted.
    """
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)

    if cycle.status != OPEN:
        raise InvariantViolation("Only open billing cycles can be edited")

    _validate_range(
        updates.get("start_date", cycle.start_date),
        updates.get("end_date", cycle.end_date),
    )
    for field, value in updates.items():
        setattr(cycle, field, value)

    await db.flush()
    return cycle


async def close_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
    end_date: date | None = None,
) -> BillingCycle:
    """
    Close an open cycle, freezing its totals.

    Args:
        end_date: Optional new end date (closing early or late).

    Raises:
        InvariantViolation: If the cycle is not open.
        ValidationError: If end_date is before the cycle start.
    """
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)

    if cycle.status != OPEN:
        raise InvariantViolation("Only open billing cycles can be closed")

    if end_date is not None:
        _validate_range(cycle.start_date, end_date)
        cycle.end_date = end_date

    totals = await _compute_totals(db, project_id, cycle.start_date, cycle.end_date)
    _apply_snapshot(cycle, totals)
    cycle.status = CLOSED
    cycle.closed_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info(
        "billing_cycle_closed",
        extra={
            "billing_cycle_id": str(cycle.id),
            "snapshot_balance": str(totals["balance"]),
        },
    )
    return cycle


async def reopen_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
) -> BillingCycle:
    """
    Reopen a closed cycle and discard its snapshot.

    Raises:
        InvariantViolation: If the cycle is not closed or another cycle
            is open.
    """
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)

    if cycle.status != CLOSED:
        raise InvariantViolation("Only closed billing cycles can be reopened")
    if await _open_cycle(db, project_id, exclude_id=cycle.id) is not None:
        raise InvariantViolation(
            "There is already an open billing cycle. Close it before reopening this one."
        )

    _clear_snapshot(cycle)
    cycle.status = OPEN
    cycle.closed_at = None
    await db.flush()

    logger.info("billing_cycle_reopened", extra={"billing_cycle_id": str(cycle.id)})
    return cycle


async def recalculate_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
) -> BillingCycle:
    """Rebuild a closed cycle's snapshot from current data."""
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)

    if cycle.status != CLOSED:
        raise InvariantViolation("Only closed billing cycles can be recalculated")

    totals = await _compute_totals(db, project_id, cycle.start_date, cycle.end_date)
    _apply_snapshot(cycle, totals)
    await db.flush()
    return cycle


async def delete_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
) -> None:
    """Delete a cycle in either state. Records it loaded are kept."""
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)
    await db.delete(cycle)
    await db.flush()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_billing_cycles(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> list[dict]:
    """All cycles, latest start first. Empty when the caller has no access."""
    if not await verify_project_access(db, project_id, user_id):
        return []

    result = await db.execute(
        select(BillingCycle)
        .where(BillingCycle.project_id == project_id)
        .order_by(BillingCycle.start_date.desc())
    )
    return [await _enrich(db, cycle) for cycle in result.scalars().all()]


async def get_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    cycle_id: uuid.UUID,
) -> dict:
    await require_project_access(db, project_id, user_id)
    cycle = await _get_cycle(db, project_id, cycle_id)
    return await _enrich(db, cycle)


async def get_current_billing_cycle(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict | None:
    """The open cycle with live totals, or None."""
    if not await verify_project_access(db, project_id, user_id):
        return None

    cycle = await _open_cycle(db, project_id)
    if cycle is None:
        return None
    return await _enrich(db, cycle)


async def get_billing_cycle_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """Cycle counts by status plus the current open cycle."""
    cycles = await get_billing_cycles(db, project_id, user_id)
    open_cycles = [c for c in cycles if c["status"] == OPEN]
    return {
        "total_cycles": len(cycles),
        "open_cycles": len(open_cycles),
        "closed_cycles": len(cycles) - len(open_cycles),
        "current_cycle": open_cycles[0] if open_cycles else None,
    }


async def get_range_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> dict:
    """Cycle-style totals for an arbitrary range; zeroed without access."""
    if not await verify_project_access(db, project_id, user_id):
        return {
            "income": Decimal("0.00"),
            "expenses": Decimal("0.00"),
            "savings": Decimal("0.00"),
            "balance": Decimal("0.00"),
            "days_total": 0,
        }

    _validate_range(start_date, end_date)
    totals = await _compute_totals(db, project_id, start_date, end_date)
    totals["days_total"] = (end_date - start_date).days
    return totals


def _cycle_name(end_date: date) -> str:
    return f"Cycle {end_date.strftime('%B')} {end_date.year}"


async def suggest_next_cycle_dates(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    today: date | None = None,
) -> dict | None:
    """
    Propose dates and a name for the next cycle.

    After the latest cycle: starts the day after it ends and keeps its
    duration. With no cycles yet: today through the 25th of next month.
    """
    if not await verify_project_access(db, project_id, user_id):
        return None

    today = today or date.today()
    result = await db.execute(
        select(BillingCycle)
        .where(BillingCycle.project_id == project_id)
        .order_by(BillingCycle.end_date.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()

    if last is None:
        start = today
        end = add_months(today.replace(day=25), 1)
    else:
        start = last.end_date + timedelta(days=1)
        end = start + (last.end_date - last.start_date)

    return {"start_date": start, "end_date": end, "name": _cycle_name(end)}
