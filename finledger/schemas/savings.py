"""Pydantic schemas for savings funds and movements."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class SavingsFundCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    target_amount: Decimal | None = Field(None, gt=0, decimal_places=2)


class SavingsFundResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    target_amount: Decimal | None
    current_balance: Decimal
    is_archived: bool

    model_config = {"from_attributes": True}


class SavingsMovementCreateRequest(BaseModel):
    type: Literal["deposit", "withdrawal"]
    amount: Decimal = Field(gt=0, decimal_places=2)
    date: dt.date
    description: str | None = Field(None, max_length=500)


class SavingsMovementResponse(BaseModel):
    id: uuid.UUID
    savings_fund_id: uuid.UUID
    type: str
    amount: Decimal
    date: dt.date
    description: str | None

    model_config = {"from_attributes": True}


class SavingsSummaryResponse(BaseModel):
    total_funds: int
    total_saved: Decimal
    total_target: Decimal
