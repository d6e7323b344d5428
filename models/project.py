from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models._common import normalize_timestamp, unique_ids
from models.attachment import ProjectAttachment
from models.comment import ProjectComment
from models.enums import ProjectPriority, ProjectStatus
from models.task import ProjectTask


# -------------------------------------------------------------------
# BASE MODEL (shared fields)
# -------------------------------------------------------------------
class ProjectBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    status: ProjectStatus = ProjectStatus.not_started
    priority: ProjectPriority = ProjectPriority.medium
    start_date: datetime
    end_date: Optional[datetime] = None
    budget: Optional[float] = Field(None, ge=0)
    supervisor: str
    team: List[str] = Field(default_factory=list)
    created_by: str

    @field_validator("start_date", "end_date", mode="before")
    def normalize_dates(cls, v):
        return normalize_timestamp(v)

    @field_validator("team", mode="before")
    def normalize_team(cls, v):
        return unique_ids(v)


# -------------------------------------------------------------------
# CREATE MODEL (id, timestamps and nested lists are server-set)
# -------------------------------------------------------------------
class ProjectCreate(ProjectBase):
    model_config = ConfigDict(extra="ignore")


# -------------------------------------------------------------------
# UPDATE MODEL (partial update)
# -------------------------------------------------------------------
class ProjectUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[float] = Field(None, ge=0)
    supervisor: Optional[str] = None
    team: Optional[List[str]] = None
    created_by: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    def normalize_dates(cls, v):
        return normalize_timestamp(v)

    @field_validator("team", mode="before")
    def normalize_team(cls, v):
        return None if v is None else unique_ids(v)


# -------------------------------------------------------------------
# READ MODEL (the full aggregate as stored)
# -------------------------------------------------------------------
class Project(ProjectBase):
    model_config = ConfigDict(extra="allow")

    id: str
    created_at: datetime
    updated_at: datetime
    tasks: List[ProjectTask] = Field(default_factory=list)
    comments: List[ProjectComment] = Field(default_factory=list)
    attachments: List[ProjectAttachment] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", mode="before")
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    @field_validator("tasks", "comments", "attachments", mode="before")
    def default_empty(cls, v):
        return v or []

    def find_task(self, task_id: str) -> Optional[ProjectTask]:
        return next((t for t in self.tasks if t.id == task_id), None)


# -------------------------------------------------------------------
# LIST FILTER
# -------------------------------------------------------------------
class ProjectFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[ProjectStatus] = None
    supervisor: Optional[str] = None
    team: Optional[str] = None  # membership test on Project.team
