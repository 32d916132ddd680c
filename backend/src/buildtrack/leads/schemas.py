"""Pydantic schemas for the customer leads API"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, EmailStr

from ..uploads.schemas import FileRef


class RequirementCreate(BaseModel):
    requirement_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    urgency: Optional[str] = None
    budget: Optional[Decimal] = Field(None, ge=0)
    scp_data: Dict[str, Any] = Field(default_factory=dict)
    files: List[FileRef] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')


class LeadCreate(BaseModel):
    lead_source: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    mobile_number: str = Field(..., min_length=5, max_length=20)
    email: Optional[EmailStr] = None
    state: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    customer_id: Optional[UUID] = None
    requirements: List[RequirementCreate] = Field(..., min_length=1)

    model_config = ConfigDict(extra='forbid')


class LeadUpdate(BaseModel):
    lead_source: Optional[str] = None
    customer_name: Optional[str] = None
    mobile_number: Optional[str] = Field(None, min_length=5, max_length=20)
    email: Optional[EmailStr] = None
    state: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    customer_id: Optional[UUID] = None

    model_config = ConfigDict(extra='forbid')


class ShareRequirementRequest(BaseModel):
    user_id: UUID
