from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models._common import normalize_timestamp


# -------------------------------------------------------------------
# COMMENT (embedded in a project or a task)
# created_by_name is captured at creation and never re-resolved.
# -------------------------------------------------------------------
class ProjectComment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    content: str
    created_by: str
    created_by_name: str
    created_at: datetime

    @field_validator("created_at", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)

    @field_validator("content", mode="before")
    def strip_content(cls, v):
        return v.strip() if isinstance(v, str) else v
