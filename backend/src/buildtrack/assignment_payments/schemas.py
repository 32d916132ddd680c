"""Pydantic schemas for the project assignment payments API"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict


class AssignmentPaymentCreate(BaseModel):
    project_id: UUID
    user_id: UUID
    assigned_amount: Decimal = Field(..., gt=0)
    per_day_amount: Decimal = Field(..., gt=0)
    note: Optional[str] = None

    model_config = ConfigDict(extra='forbid')


class AssignmentPaymentUpdate(BaseModel):
    assigned_amount: Optional[Decimal] = Field(None, gt=0)
    per_day_amount: Optional[Decimal] = Field(None, gt=0)
    note: Optional[str] = None

    model_config = ConfigDict(extra='forbid')
