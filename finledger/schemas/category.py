"""Pydantic schemas for categories."""

import uuid
from typing import Literal

from pydantic import BaseModel, Field


class CategoryCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal["income", "expense"]
    color: str | None = Field(None, max_length=20)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    type: str
    color: str | None
    is_system: bool

    model_config = {"from_attributes": True}
