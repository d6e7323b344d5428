# -------------------------
# Enums
# -------------------------
from .enums import (
    AccessLevel,
    Action,
    ProjectPriority,
    ProjectStatus,
    Resource,
    Role,
)

# -------------------------
# Actor
# -------------------------
from .actor import Actor

# -------------------------
# Comment / Attachment Models
# -------------------------
from .comment import CommentCreate, ProjectComment
from .attachment import ProjectAttachment, UploadedFile

# -------------------------
# Task Models
# -------------------------
from .task import ProjectTask, TaskCreate, TaskUpdate

# -------------------------
# Project Models
# -------------------------
from .project import (
    Project,
    ProjectBase,
    ProjectCreate,
    ProjectFilter,
    ProjectUpdate,
)
