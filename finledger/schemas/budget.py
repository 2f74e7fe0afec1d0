"""Pydantic schemas for monthly category budgets."""

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class BudgetCreateRequest(BaseModel):
    category_id: uuid.UUID
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    amount: Decimal = Field(gt=0, decimal_places=2)


class BudgetUpdateRequest(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)


class BudgetCopyRequest(BaseModel):
    """Target month; budgets are copied from the month before it."""
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)


class BudgetCopyResponse(BaseModel):
    count: int


class BudgetResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    category_id: uuid.UUID
    year: int
    month: int
    amount: Decimal

    model_config = {"from_attributes": True}


class BudgetStatusResponse(BudgetResponse):
    spent: Decimal
    remaining: Decimal
    percentage_used: int
    is_over_budget: bool
