from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models._common import normalize_timestamp


# -------------------------------------------------------------------
# ATTACHMENT (embedded in a project or a task)
# file_url points into the blob store; storage_path is the blob key.
# -------------------------------------------------------------------
class ProjectAttachment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    file_name: str
    file_url: str
    file_type: str
    file_size: Optional[int] = None
    storage_path: Optional[str] = None
    uploaded_by: str
    uploaded_by_name: Optional[str] = None
    uploaded_at: datetime

    @field_validator("uploaded_at", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)


# -------------------------------------------------------------------
# UPLOADED FILE (incoming bytes, before it becomes an attachment)
# -------------------------------------------------------------------
class UploadedFile(BaseModel):
    file_name: str = Field(min_length=1)
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)
