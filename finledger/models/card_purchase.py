"""
CardPurchase model — a credit-card purchase split into monthly installments.

All installment legs are created up front, paid, at purchase time: the card
debt grows by the full total immediately. What changes afterwards is only
reconciliation (which legs a real payoff transfer has settled).

Derived, never stored:
  reconciled = initial_paid_installments + count(legs with paid_by_transfer_id)
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Boolean, Integer, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from finledger.database import Base


class CardPurchase(Base):
    __tablename__ = "card_purchases"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    # Must reference a credit_card account
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
    )

    entity_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    store_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    purchase_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    original_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    # Percentage over the whole purchase, 0-100
    interest_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    interest_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
    )

    installments: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    installment_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    first_charge_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Installments already due before the purchase was recorded
    initial_paid_installments: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Number of legs generated (equals installments once created)
    charged_installments: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Debt taken on behalf of someone else; excluded from personal capacity
    is_external_debt: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
