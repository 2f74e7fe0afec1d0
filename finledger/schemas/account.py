"""
Pydantic schemas for Account endpoints.

Balances are signed Decimals with two places: a credit card that carries
debt has a negative current_balance.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

AccountType = Literal["checking", "savings", "cash", "credit_card"]


class AccountCreateRequest(BaseModel):
    """Request body for POST /accounts."""
    name: str = Field(min_length=1, max_length=255)
    type: AccountType = "checking"
    currency: str = Field("USD", min_length=3, max_length=3)
    initial_balance: Decimal = Field(Decimal("0"), decimal_places=2)
    bank_name: str | None = Field(None, max_length=255)
    credit_limit: Decimal | None = Field(None, ge=0, decimal_places=2)


class AccountUpdateRequest(BaseModel):
    """Partial update; only supplied fields change."""
    name: str | None = Field(None, min_length=1, max_length=255)
    type: AccountType | None = None
    bank_name: str | None = Field(None, max_length=255)
    initial_balance: Decimal | None = Field(None, decimal_places=2)
    credit_limit: Decimal | None = Field(None, ge=0, decimal_places=2)


class AccountResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    type: str
    bank_name: str | None
    currency: str
    initial_balance: Decimal
    current_balance: Decimal
    credit_limit: Decimal | None
    is_archived: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """
    Running balance next to a from-scratch recomputation.

    ``match`` is False only if the incremental bookkeeping drifted.
    """
    account_id: uuid.UUID
    current_balance: Decimal
    computed_balance: Decimal
    match: bool
    currency: str
