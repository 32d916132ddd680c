"""Pydantic schemas for the wallet API"""

from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

TransactionType = Literal[
    "site_visit_payment",
    "architect_payment",
    "reimbursement",
    "advance",
    "adjustment",
]


class WalletTransactionCreate(BaseModel):
    user_id: UUID
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("INR", min_length=3, max_length=3)
    project_id: Optional[UUID] = None
    site_visit_id: Optional[UUID] = None
    requirement_id: Optional[UUID] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra='forbid')
