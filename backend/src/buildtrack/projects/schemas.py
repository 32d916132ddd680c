"""Pydantic schemas for the projects API"""

from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from ..uploads.schemas import FileRef


class ProjectCreate(BaseModel):
    project_name: str = Field(..., min_length=1)
    lead_id: UUID
    requirement_id: UUID
    budget: Optional[Decimal] = Field(None, ge=0)

    model_config = ConfigDict(extra='forbid')


class ArchitectProposalCreate(BaseModel):
    proposed_charges: Decimal = Field(..., gt=0)
    delivery_timeline_days: int = Field(..., gt=0)
    message: Optional[str] = None

    model_config = ConfigDict(extra='forbid')


class ArchitectProposalStatusChange(BaseModel):
    status: Literal["Responded", "Accepted", "Rejected", "Withdrawn"]
    response: Optional[str] = None


class ArchitectDocumentSubmit(BaseModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    files: List[FileRef] = Field(..., min_length=1)

    model_config = ConfigDict(extra='forbid')


class DocumentReview(BaseModel):
    status: Literal["Approved", "Rejected"]
    remarks: Optional[str] = None
