"""Pydantic schemas for the siteworks API"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from ..uploads.schemas import FileRef

SiteworkStatusValue = Literal["not-started", "in-progress", "completed", "cancelled"]


class AssignedUser(BaseModel):
    user_id: UUID
    assignment_amount: Decimal = Field(Decimal("0"), ge=0)
    per_day_amount: Decimal = Field(Decimal("0"), ge=0)

    model_config = ConfigDict(extra='forbid')


class SiteworkCreate(BaseModel):
    project_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sequence: int = Field(0, ge=0)
    assigned_users: List[AssignedUser] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')


class SiteworkUpdate(BaseModel):
    """Partial update; `status` moves through the sitework state machine."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sequence: Optional[int] = Field(None, ge=0)
    status: Optional[SiteworkStatusValue] = None
    assigned_users: Optional[List[AssignedUser]] = None

    model_config = ConfigDict(extra='forbid')


class SiteworkDocumentCreate(BaseModel):
    files: List[FileRef] = Field(..., min_length=1)
    user_note: Optional[str] = None

    model_config = ConfigDict(extra='forbid')


class SiteworkDocumentReview(BaseModel):
    status: Literal["Approved", "Rejected"]
    feedback: Optional[str] = None
