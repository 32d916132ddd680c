"""Pydantic schemas for the procurement API"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, ConfigDict

from ..uploads.schemas import FileRef


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    category: Optional[str] = None
    city: Optional[str] = None
    gst_number: Optional[str] = Field(None, max_length=15)

    model_config = ConfigDict(extra='forbid')


class VendorOption(BaseModel):
    id: UUID
    name: str


class PurchaseOrderCreate(BaseModel):
    project_id: UUID
    vendor_id: UUID
    bom_id: Optional[UUID] = None
    po_number: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    documents: List[FileRef] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')
