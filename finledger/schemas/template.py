"""Pydantic schemas for recurring templates."""

import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class TemplateCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=500)


class TemplateItemCreateRequest(BaseModel):
    type: Literal["income", "expense"]
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(gt=0, decimal_places=2)
    category_id: uuid.UUID | None = None
    account_id: uuid.UUID | None = None
    entity_id: uuid.UUID | None = None
    notes: str | None = None


class TemplateActiveRequest(BaseModel):
    is_active: bool


class TemplateItemResponse(BaseModel):
    id: uuid.UUID
    template_id: uuid.UUID
    category_id: uuid.UUID | None
    account_id: uuid.UUID | None
    entity_id: uuid.UUID | None
    type: str
    description: str
    amount: Decimal
    notes: str | None

    model_config = {"from_attributes": True}


class TemplateResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    description: str | None
    is_active: bool
    is_archived: bool

    model_config = {"from_attributes": True}


class TemplateWithItemsResponse(TemplateResponse):
    items: list[TemplateItemResponse]
