"""Pydantic schemas for credits (loans)."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Frequency = Literal["weekly", "biweekly", "monthly"]


class CreditCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    principal_amount: Decimal = Field(gt=0, decimal_places=2)
    installment_amount: Decimal = Field(gt=0, decimal_places=2)
    installments: int = Field(ge=1)
    start_date: dt.date
    frequency: Frequency = "monthly"
    category_id: uuid.UUID | None = None
    account_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    description: str | None = Field(None, max_length=500)
    notes: str | None = None
    paid_installments: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def paid_within_installments(self):
        if self.paid_installments is not None and self.paid_installments > self.installments:
            raise ValueError("Paid installments cannot exceed the number of installments")
        return self


class CreditUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=500)
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    notes: str | None = None


class CreditArchiveRequest(BaseModel):
    is_archived: bool = True


class CreditResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    category_id: uuid.UUID | None
    account_id: uuid.UUID | None
    entity_id: uuid.UUID | None
    name: str
    description: str | None
    principal_amount: Decimal
    total_amount: Decimal
    installments: int
    installment_amount: Decimal
    start_date: dt.date
    end_date: dt.date
    frequency: str
    is_archived: bool
    notes: str | None

    model_config = {"from_attributes": True}


class CreditProgressResponse(CreditResponse):
    paid_installments: int
    remaining_installments: int
    paid_amount: Decimal
    remaining_amount: Decimal
    progress_percentage: int
    next_payment_date: dt.date | None
    calculated_paid_installments: int


class CreditSummaryResponse(BaseModel):
    total_credits: int
    active_credits: int
    total_debt: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    monthly_payment: Decimal


class GeneratedInstallmentsResponse(BaseModel):
    count: int


class PaidInstallmentsPreviewResponse(BaseModel):
    calculated_paid_installments: int
