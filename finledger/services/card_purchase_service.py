"""
Card purchase service — installment purchases on credit cards.

Front-loaded ledger impact:
  Creating a purchase inserts ALL of its monthly installment legs at once,
  every one of them paid, and moves the card balance by the purchase total
  in ONE adjustment. Card debt exists from the moment of the purchase; the
  installments only describe when it is expected to be paid off.

  The legs sum exactly to the total: each carries total / n rounded to the
  cent and the last one absorbs the rounding remainder. Deleting the
  purchase reverts that same single lump sum.

Reconciliation:
  A payoff transfer (transfer_service.pay_credit_card_installments) stamps
  legs with paid_by_transfer_id. The number of settled installments is
  never stored:

      reconciled = initial_paid_installments + count(stamped legs)

  initial_paid_installments counts the installments whose due date had
  already passed when the purchase was recorded (old purchases imported
  into the app). Those legs are flagged is_historically_paid.

Debt capacity:
  get_debt_capacity_report compares the monthly installment load of the
  project's active, personal purchases against the project's
  max_installment_amount.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.config import settings
from finledger.exceptions import NotFoundError, ValidationError
from finledger.models.card_purchase import CardPurchase
from finledger.models.project import Project
from finledger.models.transaction import TransactionRecord, EXPENSE
from finledger.models.account import CREDIT_CARD
from finledger.services.access import require_project_access, verify_project_access
from finledger.services.account_service import get_account
from finledger.services.category_service import get_category
from finledger.services.ledger import adjust_balance, delta_for, money
from finledger.services.schedule import MONTHLY, add_months, count_past_due, due_dates

logger = logging.getLogger(__name__)


def split_installments(total: Decimal, installments: int) -> list[Decimal]:
    """
    Split a total into per-installment amounts that sum exactly to it.

    Every installment is total / n rounded to the cent; the last one
    absorbs the remainder.
    """
    base = money(total / installments)
    amounts = [base] * installments
    amounts[-1] = money(total - base * (installments - 1))
    return amounts


def purchase_totals(original_amount: Decimal, interest_rate: Decimal, installments: int) -> dict:
    """total, interest and per-installment amount for a purchase."""
    original = money(original_amount)
    total = money(original * (1 + Decimal(interest_rate) / 100))
    return {
        "total_amount": total,
        "interest_amount": total - original,
        "installment_amount": money(total / installments),
    }


async def _get_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    purchase_id: uuid.UUID,
) -> CardPurchase:
    result = await db.execute(
        select(CardPurchase).where(
            CardPurchase.id == purchase_id,
            CardPurchase.project_id == project_id,
        )
    )
    purchase = result.scalar_one_or_none()
    if purchase is None:
        raise NotFoundError("Card purchase", purchase_id)
    return purchase


async def _stamped_counts(
    db: AsyncSession,
    purchase_ids: list[uuid.UUID],
) -> dict[uuid.UUID, int]:
    """Number of reconciled (stamped) legs per purchase."""
    if not purchase_ids:
        return {}

    result = await db.execute(
        select(TransactionRecord.card_purchase_id, func.count(TransactionRecord.id))
        .where(
            TransactionRecord.card_purchase_id.in_(purchase_ids),
            TransactionRecord.paid_by_transfer_id.is_not(None),
        )
        .group_by(TransactionRecord.card_purchase_id)
    )
    return {purchase_id: count for purchase_id, count in result.all()}


def _with_progress(purchase: CardPurchase, stamped: int) -> dict:
    """Purchase fields plus the derived reconciliation progress."""
    paid = min(purchase.installments, purchase.initial_paid_installments + stamped)
    remaining = purchase.installments - paid
    remaining_amount = Decimal("0.00")
    if remaining:
        remaining_amount = money(purchase.total_amount) - money(purchase.installment_amount) * paid
    next_charge = None
    if purchase.is_active and remaining > 0:
        next_charge = add_months(purchase.first_charge_date, paid)

    data = {column.key: getattr(purchase, column.key) for column in CardPurchase.__table__.columns}
    data.update(
        paid_installments=paid,
        remaining_installments=remaining,
        remaining_amount=money(remaining_amount),
        progress_percentage=round(paid / purchase.installments * 100),
        next_charge_date=next_charge,
    )
    return data


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_card_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    account_id: uuid.UUID,
    description: str,
    original_amount: Decimal,
    installments: int,
    first_charge_date: date,
    purchase_date: date | None = None,
    interest_rate: Decimal = Decimal("0"),
    category_id: uuid.UUID | None = None,
    entity_id: uuid.UUID | None = None,
    store_name: str | None = None,
    is_external_debt: bool = False,
    notes: str | None = None,
    today: date | None = None,
) -> CardPurchase:
    """
    Record a card purchase and expand it into all its installment legs.

    Args:
        db: Database session.
        project_id: Project the purchase belongs to.
        user_id: Authenticated user; must own the card account.
        account_id: Credit card account charged.
        description: Base narrative for the purchase and its legs.
        original_amount: Price before interest.
        installments: Number of monthly installments (1 to MAX_INSTALLMENTS).
        first_charge_date: Due date of the first installment.
        purchase_date: Date of the purchase (defaults to first_charge_date).
        interest_rate: Percentage over the whole purchase (0-100).
        category_id: Optional category of this project.
        entity_id: Optional opaque counterparty.
        store_name: Where it was bought.
        is_external_debt: Bought on behalf of someone else.
        notes: Free text copied onto every leg.
        today: Reference date for the historical prefix (defaults to today).

    Returns:
        The created CardPurchase.

    Raises:
        ValidationError: Not a credit card account, or amounts/counts out
            of range.
    """
    await require_project_access(db, project_id, user_id)

    if installments < 1 or installments > settings.MAX_INSTALLMENTS:
        raise ValidationError(
            f"Installments must be between 1 and {settings.MAX_INSTALLMENTS}"
        )
    interest_rate = Decimal(interest_rate or 0)
    if interest_rate < 0 or interest_rate > 100:
        raise ValidationError("Interest rate must be between 0 and 100")
    if money(original_amount) <= 0:
        raise ValidationError("Amount must be greater than 0")

    account = await get_account(db, account_id, user_id)
    if account.type != CREDIT_CARD:
        raise ValidationError("Card purchases must be charged to a credit card account")
    if category_id is not None:
        await get_category(db, project_id, category_id)

    totals = purchase_totals(original_amount, interest_rate, installments)
    initial_paid = count_past_due(first_charge_date, MONTHLY, installments, today)

    purchase = CardPurchase(
        project_id=project_id,
        user_id=user_id,
        account_id=account.id,
        category_id=category_id,
        entity_id=entity_id,
        description=description,
        store_name=store_name,
        purchase_date=purchase_date or first_charge_date,
        original_amount=money(original_amount),
        interest_rate=interest_rate,
        installments=installments,
        first_charge_date=first_charge_date,
        initial_paid_installments=initial_paid,
        charged_installments=installments,
        is_external_debt=is_external_debt,
        is_active=initial_paid < installments,
        notes=notes,
        **totals,
    )
    db.add(purchase)
    await db.flush()

    amounts = split_installments(totals["total_amount"], installments)
    dates = due_dates(first_charge_date, MONTHLY, installments)
    db.add_all([
        TransactionRecord(
            project_id=project_id,
            user_id=user_id,
            account_id=account.id,
            category_id=category_id,
            entity_id=entity_id,
            card_purchase_id=purchase.id,
            type=EXPENSE,
            amount=amounts[i],
            date=dates[i],
            description=f"{description} - Installment {i + 1}/{installments}",
            notes=notes,
            is_paid=True,
            paid_at=None,
            is_historically_paid=i < initial_paid,
        )
        for i in range(installments)
    ])
    await db.flush()

    # One lump-sum adjustment for the whole purchase, not one per leg
    await adjust_balance(db, account.id, delta_for(EXPENSE, totals["total_amount"]))

    logger.info(
        "card_purchase_created",
        extra={
            "project_id": str(project_id),
            "card_purchase_id": str(purchase.id),
            "total_amount": str(totals["total_amount"]),
            "installments": installments,
            "initial_paid_installments": initial_paid,
        },
    )
    return purchase


async def update_card_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    purchase_id: uuid.UUID,
    updates: dict,
) -> CardPurchase:
    """
    Partial update of descriptive fields and the active/external flags.

    Amounts, installment count and dates are fixed once legs exist.
    """
    await require_project_access(db, project_id, user_id)
    purchase = await _get_purchase(db, project_id, purchase_id)

    if updates.get("category_id") is not None:
        await get_category(db, project_id, updates["category_id"])

    for field, value in updates.items():
        setattr(purchase, field, value)

    await db.flush()
    return purchase


async def archive_card_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    purchase_id: uuid.UUID,
) -> CardPurchase:
    """Deactivate a purchase (it stops counting toward debt capacity)."""
    await require_project_access(db, project_id, user_id)
    purchase = await _get_purchase(db, project_id, purchase_id)
    purchase.is_active = False
    await db.flush()
    return purchase


async def delete_card_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    purchase_id: uuid.UUID,
) -> None:
    """
    Delete a purchase with all its legs.

    Reverts exactly the lump sum applied at creation (+total on the card).
    Payoff transfers that reconciled some of its legs stay in place.
    """
    await require_project_access(db, project_id, user_id)
    purchase = await _get_purchase(db, project_id, purchase_id)

    await db.execute(
        delete(TransactionRecord)
        .where(TransactionRecord.card_purchase_id == purchase.id)
        .execution_options(synchronize_session="fetch")
    )
    await adjust_balance(db, purchase.account_id, -delta_for(EXPENSE, purchase.total_amount))

    await db.delete(purchase)
    await db.flush()

    logger.info(
        "card_purchase_deleted",
        extra={"card_purchase_id": str(purchase_id), "reverted": str(purchase.total_amount)},
    )


async def refresh_purchase_status(
    db: AsyncSession,
    purchase_ids: set[uuid.UUID],
) -> None:
    """
    Re-derive is_active for purchases whose reconciliation changed.

    A purchase turns inactive once every installment is reconciled and
    active again if a payoff it relied on was deleted.
    """
    result = await db.execute(select(CardPurchase).where(CardPurchase.id.in_(purchase_ids)))
    purchases = list(result.scalars().all())
    stamped = await _stamped_counts(db, [p.id for p in purchases])

    for purchase in purchases:
        reconciled = purchase.initial_paid_installments + stamped.get(purchase.id, 0)
        purchase.is_active = reconciled < purchase.installments

    await db.flush()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_card_purchases(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    account_id: uuid.UUID | None = None,
    active_only: bool = False,
) -> list[dict]:
    """List purchases with their progress, newest purchase first."""
    await require_project_access(db, project_id, user_id)

    query = select(CardPurchase).where(CardPurchase.project_id == project_id)
    if account_id is not None:
        query = query.where(CardPurchase.account_id == account_id)
    if active_only:
        query = query.where(CardPurchase.is_active.is_(True))
    query = query.order_by(CardPurchase.purchase_date.desc(), CardPurchase.created_at.desc())

    purchases = list((await db.execute(query)).scalars().all())
    stamped = await _stamped_counts(db, [p.id for p in purchases])
    return [_with_progress(p, stamped.get(p.id, 0)) for p in purchases]


async def get_card_purchase(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    purchase_id: uuid.UUID,
) -> dict:
    """A single purchase with its progress."""
    await require_project_access(db, project_id, user_id)
    purchase = await _get_purchase(db, project_id, purchase_id)
    stamped = await _stamped_counts(db, [purchase.id])
    return _with_progress(purchase, stamped.get(purchase.id, 0))


async def get_card_purchase_installments(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    purchase_id: uuid.UUID,
) -> list[TransactionRecord]:
    """The purchase's installment legs in due-date order."""
    await require_project_access(db, project_id, user_id)
    purchase = await _get_purchase(db, project_id, purchase_id)

    result = await db.execute(
        select(TransactionRecord)
        .where(TransactionRecord.card_purchase_id == purchase.id)
        .order_by(TransactionRecord.date.asc())
    )
    return list(result.scalars().all())


async def get_card_purchase_summary(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Aggregate view of the project's card purchases.

    Returns zeros when the caller has no access.
    """
    summary = {
        "total_purchases": 0,
        "active_purchases": 0,
        "total_debt": Decimal("0.00"),
        "total_interest_paid": Decimal("0.00"),
        "monthly_charge": Decimal("0.00"),
        "personal_debt": Decimal("0.00"),
        "external_debt": Decimal("0.00"),
    }
    if not await verify_project_access(db, project_id, user_id):
        return summary

    purchases = await get_card_purchases(db, project_id, user_id)
    summary["total_purchases"] = len(purchases)

    for purchase in purchases:
        summary["total_interest_paid"] += money(purchase["interest_amount"])
        if not purchase["is_active"] or purchase["remaining_installments"] == 0:
            continue

        summary["active_purchases"] += 1
        summary["total_debt"] += purchase["remaining_amount"]
        summary["monthly_charge"] += money(purchase["installment_amount"])
        if purchase["is_external_debt"]:
            summary["external_debt"] += purchase["remaining_amount"]
        else:
            summary["personal_debt"] += purchase["remaining_amount"]

    return summary


async def get_debt_capacity_report(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Monthly installment load against the project's debt-capacity limit.

    Only active purchases with unreconciled installments count; each adds
    its per-installment amount (not its remaining total). External debt is
    reported separately and does not consume personal capacity.

    Returns a zeroed report when the caller has no access; a project with
    no limit configured reports a null limit and 0%.
    """
    report = {
        "max_installment_amount": None,
        "personal_monthly_charge": Decimal("0.00"),
        "external_monthly_charge": Decimal("0.00"),
        "total_monthly_charge": Decimal("0.00"),
        "used_percentage": 0,
        "available_capacity": Decimal("0.00"),
        "is_over_limit": False,
    }
    if not await verify_project_access(db, project_id, user_id):
        return report

    project = await db.get(Project, project_id)
    limit = money(project.max_installment_amount) if project.max_installment_amount is not None else None

    for purchase in await get_card_purchases(db, project_id, user_id, active_only=True):
        if purchase["remaining_installments"] <= 0:
            continue
        if purchase["is_external_debt"]:
            report["external_monthly_charge"] += money(purchase["installment_amount"])
        else:
            report["personal_monthly_charge"] += money(purchase["installment_amount"])

    personal = report["personal_monthly_charge"]
    report["total_monthly_charge"] = personal + report["external_monthly_charge"]
    report["max_installment_amount"] = limit

    if limit is not None:
        if limit > 0:
            report["used_percentage"] = round(personal / limit * 100)
        report["available_capacity"] = max(Decimal("0.00"), limit - personal)
        report["is_over_limit"] = personal > limit

    return report
