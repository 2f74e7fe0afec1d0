"""
Pydantic schemas for transactions, transfers and credit card payoffs.

Amounts are positive Decimals with two places; the sign a record carries
on its account comes from its type (income adds, expense subtracts).
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

TransactionType = Literal["income", "expense"]


class TransactionCreateRequest(BaseModel):
    """Request body for POST /projects/{id}/transactions."""
    type: TransactionType
    amount: Decimal = Field(gt=0, decimal_places=2)
    date: dt.date
    description: str = Field(min_length=1, max_length=500)
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    notes: str | None = None
    is_paid: bool = False
    paid_at: dt.datetime | None = None


class TransactionUpdateRequest(BaseModel):
    """
    Partial update. Only supplied fields change; an explicit null clears
    account, category, entity or notes.
    """
    type: TransactionType | None = None
    amount: Decimal | None = Field(None, gt=0, decimal_places=2)
    date: dt.date | None = None
    description: str | None = Field(None, min_length=1, max_length=500)
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    notes: str | None = None
    is_paid: bool | None = None
    paid_at: dt.datetime | None = None


class TogglePaidRequest(BaseModel):
    is_paid: bool
    paid_at: dt.datetime | None = None


class TransactionResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    account_id: uuid.UUID | None
    category_id: uuid.UUID | None
    entity_id: uuid.UUID | None
    type: str
    amount: Decimal
    date: dt.date
    description: str
    notes: str | None
    is_paid: bool
    paid_at: dt.datetime | None
    linked_transaction_id: uuid.UUID | None
    card_purchase_id: uuid.UUID | None
    credit_id: uuid.UUID | None
    paid_by_transfer_id: uuid.UUID | None
    is_historically_paid: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class TransactionSummaryResponse(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    transaction_count: int


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class TransferRequest(BaseModel):
    """Request body for POST /projects/{id}/transfers."""
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal = Field(gt=0, decimal_places=2)
    date: dt.date
    description: str | None = Field(None, max_length=400)
    notes: str | None = None


class TransferUpdateRequest(BaseModel):
    amount: Decimal | None = Field(None, gt=0, decimal_places=2)
    date: dt.date | None = None
    description: str | None = Field(None, min_length=1, max_length=400)
    notes: str | None = None
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None


class TransferResponse(BaseModel):
    """Both legs of a transfer."""
    out_transaction: TransactionResponse
    in_transaction: TransactionResponse
    amount: Decimal
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID


class CreditCardPaymentRequest(BaseModel):
    """Pay selected card installments from a funding account."""
    source_account_id: uuid.UUID
    card_account_id: uuid.UUID
    transaction_ids: list[uuid.UUID] = Field(min_length=1)
    date: dt.date
    description: str | None = Field(None, max_length=400)
    notes: str | None = None
    interest_amount: Decimal | None = Field(None, ge=0, decimal_places=2)
    interest_category_id: uuid.UUID | None = None
    interest_description: str | None = Field(None, max_length=500)


class CreditCardPaymentResponse(BaseModel):
    transfer_id: uuid.UUID
    income_leg_id: uuid.UUID
    total_paid: Decimal
    interest_paid: Decimal
    installments_paid: int


class HistoricallyPaidRequest(BaseModel):
    transaction_ids: list[uuid.UUID] = Field(min_length=1)
    is_historically_paid: bool


class HistoricallyPaidResponse(BaseModel):
    updated: int
