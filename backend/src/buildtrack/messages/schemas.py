"""Pydantic schemas for the messages API"""

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, model_validator

from ..uploads.schemas import FileRef


class MessageCreate(BaseModel):
    project_id: UUID
    content: str = ""
    files: List[FileRef] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')

    @model_validator(mode='after')
    def require_content_or_files(self):
        if not self.content.strip() and not self.files:
            raise ValueError("Message needs content or at least one file")
        return self
