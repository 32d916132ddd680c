"""Pydantic schemas for the client proposals API"""

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict


class ProposalSection(BaseModel):
    """One titled block of proposal content (overview, cost breakdown, terms, ...)."""
    heading: str = Field(..., min_length=1)
    content: str = ""


class ClientProposalCreate(BaseModel):
    project_id: UUID
    title: str = Field(..., min_length=1)
    customer_info: Dict[str, Any] = Field(default_factory=dict)
    sections: List[ProposalSection] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(None, ge=0)

    model_config = ConfigDict(extra='forbid')


class ClientProposalUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    customer_info: Optional[Dict[str, Any]] = None
    sections: Optional[List[ProposalSection]] = None
    total_amount: Optional[Decimal] = Field(None, ge=0)

    model_config = ConfigDict(extra='forbid')


class ClientProposalStatusChange(BaseModel):
    status: Literal["draft", "sent", "approved", "rejected", "archived"]
