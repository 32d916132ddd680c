"""Pydantic schemas for the site visits API"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from ..uploads.schemas import FileRef


class SiteVisitSchedule(BaseModel):
    site_engineer_id: UUID
    visit_date: datetime
    remarks: Optional[str] = None

    model_config = ConfigDict(extra='forbid')


class SiteVisitProgress(BaseModel):
    """Progress save by the site engineer.

    `updated_data` is shallow-merged into the visit's existing draft; files
    with staged keys are moved under the visit's permanent prefix.
    """
    updated_data: Optional[Dict[str, Any]] = None
    files: List[FileRef] = Field(default_factory=list)
    remarks: Optional[str] = None
    visit_date: Optional[datetime] = None

    model_config = ConfigDict(extra='forbid')
