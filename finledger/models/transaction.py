"""
TransactionRecord model — every monetary movement in a project.

A record is one "leg": a standalone income/expense, one side of a transfer,
or one installment of a card purchase or credit.

Key fields:
  - type: "income" or "expense" — the direction of money flow
  - amount: always positive; the sign comes from the type
  - is_paid: whether the money is actually accounted for. Only paid legs
    contribute to the account's running balance.
  - linked_transaction_id: set on both legs of a transfer, each pointing at
    the other. Paired legs have opposite types and equal amounts and are
    only ever created, edited and deleted together.
  - paid_by_transfer_id: reconciliation stamp for credit-card installment
    legs. Points at the expense leg of the payoff transfer that settled
    it. It is NOT a second paid flag: the leg was already paid (it hit the
    card balance when the purchase was made).
  - is_historically_paid: pre-existing debt, counted as settled without a
    real payment transfer.
"""

import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import (
    String,
    Text,
    Boolean,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from finledger.database import Base


INCOME = "income"
EXPENSE = "expense"


class TransactionRecord(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Direction is carried by type, never by sign
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Member who recorded it
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    # NULL for records not tied to an account (e.g. a credit without one)
    account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
    )

    # Opaque reference to a counterparty (store, bank, person)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
    )

    type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    # Calendar date the movement belongs to (cycle and schedule math use it)
    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    is_paid: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    paid_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Transfer pairing (symmetric)
    linked_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=True,
        index=True,
    )

    card_purchase_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("card_purchases.id"),
        nullable=True,
        index=True,
    )

    credit_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("credits.id"),
        nullable=True,
        index=True,
    )

    # Expense leg of the payoff transfer that reconciled this installment
    paid_by_transfer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=True,
        index=True,
    )

    is_historically_paid: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        onupdate=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )
