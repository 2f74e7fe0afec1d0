"""Pydantic schemas for projects and memberships."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    base_currency: str | None = Field(None, min_length=3, max_length=3)
    max_installment_amount: Decimal | None = Field(None, ge=0, decimal_places=2)


class ProjectUpdateRequest(BaseModel):
    """Partial update; only supplied fields change."""
    name: str | None = Field(None, min_length=1, max_length=255)
    base_currency: str | None = Field(None, min_length=3, max_length=3)
    max_installment_amount: Decimal | None = Field(
        None, ge=0, decimal_places=2, description="Debt-capacity ceiling; null removes it"
    )


class ProjectResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    base_currency: str
    max_installment_amount: Decimal | None
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteMemberRequest(BaseModel):
    email: EmailStr


class ProjectMemberResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    invited_at: datetime
    accepted_at: datetime | None

    model_config = {"from_attributes": True}
