"""
Account model — a place money lives: checking, savings, cash or credit card.

Balance management:
  current_balance is a running balance maintained incrementally. Every
  paid transaction leg referencing the account has already been folded in:

      current_balance == initial_balance + Σ signed(leg) for paid legs

  where income is positive and expense negative. Nothing in the normal
  request path recomputes it from scratch; changes go through
  services.ledger.adjust_balance, a single atomic UPDATE statement.

  There is no non-negative constraint: credit cards carry negative
  balances (debt) under the signed convention, and checking
  accounts may be overdrawn.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from finledger.database import Base


CREDIT_CARD = "credit_card"
ACCOUNT_TYPES = ("checking", "savings", "cash", CREDIT_CARD)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner of this account
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # One of ACCOUNT_TYPES
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="checking",
    )

    bank_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # ISO 4217 currency code
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
    )

    initial_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
    )

    # Running balance, updated atomically with each paid leg
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
    )

    # Only meaningful for credit cards
    credit_limit: Mapped[Decimal | None] = mapped_column(
        Numeric(15, 2),
        nullable=True,
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
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
