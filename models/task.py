from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models._common import normalize_timestamp, unique_ids
from models.attachment import ProjectAttachment
from models.comment import ProjectComment
from models.enums import ProjectStatus


# -------------------------------------------------------------------
# TASK (embedded in exactly one project)
# -------------------------------------------------------------------
class ProjectTask(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    description: str = ""
    status: ProjectStatus
    assigned_to: List[str] = Field(default_factory=list)
    due_date: datetime
    created_by: str
    created_at: datetime
    updated_at: datetime
    comments: List[ProjectComment] = Field(default_factory=list)
    attachments: List[ProjectAttachment] = Field(default_factory=list)

    @field_validator("due_date", "created_at", "updated_at", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    @field_validator("assigned_to", mode="before")
    def normalize_assignees(cls, v):
        return unique_ids(v)

    @field_validator("comments", "attachments", mode="before")
    def default_empty(cls, v):
        return v or []


# -------------------------------------------------------------------
# CREATE MODEL (id, timestamps, created_by and nested lists are server-set)
# -------------------------------------------------------------------
class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: str = ""
    status: ProjectStatus = ProjectStatus.not_started
    assigned_to: List[str] = Field(default_factory=list)
    due_date: datetime

    @field_validator("due_date", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    @field_validator("assigned_to", mode="before")
    def normalize_assignees(cls, v):
        return unique_ids(v)


# -------------------------------------------------------------------
# UPDATE MODEL (partial update)
# -------------------------------------------------------------------
class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    assigned_to: Optional[List[str]] = None
    due_date: Optional[datetime] = None
    created_by: Optional[str] = None

    @field_validator("due_date", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    @field_validator("assigned_to", mode="before")
    def normalize_assignees(cls, v):
        return None if v is None else unique_ids(v)
