"""Pydantic schemas for credit card installment purchases."""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

from finledger.config import settings


class CardPurchaseCreateRequest(BaseModel):
    account_id: uuid.UUID
    description: str = Field(min_length=1, max_length=500)
    original_amount: Decimal = Field(gt=0, decimal_places=2)
    installments: int = Field(ge=1, le=settings.MAX_INSTALLMENTS)
    first_charge_date: dt.date
    purchase_date: dt.date | None = None
    interest_rate: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    store_name: str | None = Field(None, max_length=255)
    is_external_debt: bool = False
    notes: str | None = None


class CardPurchaseUpdateRequest(BaseModel):
    """Descriptive fields only; amounts and schedule are fixed."""
    description: str | None = Field(None, min_length=1, max_length=500)
    store_name: str | None = Field(None, max_length=255)
    category_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    notes: str | None = None
    is_external_debt: bool | None = None
    is_active: bool | None = None


class CardPurchaseResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    account_id: uuid.UUID
    category_id: uuid.UUID | None
    entity_id: uuid.UUID | None
    description: str
    store_name: str | None
    purchase_date: dt.date
    original_amount: Decimal
    interest_rate: Decimal
    total_amount: Decimal
    interest_amount: Decimal
    installments: int
    installment_amount: Decimal
    first_charge_date: dt.date
    initial_paid_installments: int
    charged_installments: int
    is_external_debt: bool
    is_active: bool
    notes: str | None

    model_config = {"from_attributes": True}


class CardPurchaseProgressResponse(CardPurchaseResponse):
    paid_installments: int
    remaining_installments: int
    remaining_amount: Decimal
    progress_percentage: int
    next_charge_date: dt.date | None


class CardPurchaseSummaryResponse(BaseModel):
    total_purchases: int
    active_purchases: int
    total_debt: Decimal
    total_interest_paid: Decimal
    monthly_charge: Decimal
    personal_debt: Decimal
    external_debt: Decimal


class DebtCapacityResponse(BaseModel):
    max_installment_amount: Decimal | None
    personal_monthly_charge: Decimal
    external_monthly_charge: Decimal
    total_monthly_charge: Decimal
    used_percentage: int
    available_capacity: Decimal
    is_over_limit: bool
