"""Pydantic schemas for the BOM API"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


class BomItemIn(BaseModel):
    material_name: str = Field(..., min_length=1)
    specification: Optional[str] = None
    unit: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    estimated_unit_cost: Decimal = Field(Decimal("0"), ge=0)

    model_config = ConfigDict(extra='forbid')


class BomCreate(BaseModel):
    title: str = Field(..., min_length=1)
    remarks: Optional[str] = None
    is_reusable: bool = False
    items: List[BomItemIn] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')


class BomUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    remarks: Optional[str] = None
    is_reusable: Optional[bool] = None
    items: Optional[List[BomItemIn]] = None

    model_config = ConfigDict(extra='forbid')


class BomStatusChange(BaseModel):
    status: Literal["draft", "submitted", "approved", "rejected"]
    remarks: Optional[str] = None


class BomReview(BaseModel):
    status: Literal["approved", "rejected"]
    admin_remarks: Optional[str] = None
