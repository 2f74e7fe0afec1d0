"""Pydantic schemas for billing cycles."""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class BillingCycleCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    start_date: dt.date
    end_date: dt.date
    notes: str | None = None


class BillingCycleUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    notes: str | None = None


class BillingCycleCloseRequest(BaseModel):
    end_date: dt.date | None = Field(None, description="Close with a different end date")


class BillingCycleResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    start_date: dt.date
    end_date: dt.date
    status: str
    snapshot_income: Decimal | None
    snapshot_expenses: Decimal | None
    snapshot_savings: Decimal | None
    snapshot_balance: Decimal | None
    closed_at: dt.datetime | None
    notes: str | None

    model_config = {"from_attributes": True}


class BillingCycleWithTotalsResponse(BillingCycleResponse):
    """Snapshot totals for closed cycles, live totals for the open one."""
    current_income: Decimal
    current_expenses: Decimal
    current_savings: Decimal
    current_balance: Decimal
    days_total: int
    days_elapsed: int
    days_remaining: int


class BillingCycleSummaryResponse(BaseModel):
    total_cycles: int
    open_cycles: int
    closed_cycles: int
    current_cycle: BillingCycleWithTotalsResponse | None


class RangeSummaryResponse(BaseModel):
    income: Decimal
    expenses: Decimal
    savings: Decimal
    balance: Decimal
    days_total: int


class CycleSuggestionResponse(BaseModel):
    name: str
    start_date: dt.date
    end_date: dt.date
