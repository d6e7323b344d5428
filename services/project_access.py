# services/project_access.py

"""
Caller-side relationship context for permission checks.

core.permissions never looks identities up; these helpers derive the
flags from a loaded aggregate so callers can write:

    can_perform("view", "projects", actor.role, project_context(actor, project))
"""

from typing import Optional

from core.permissions import PermissionChecker, PermissionContext
from models.actor import Actor
from models.project import Project
from models.task import ProjectTask


def project_context(actor: Actor, project: Project) -> PermissionContext:
    on_team = actor.id in project.team
    assigned_to_task = any(actor.id in task.assigned_to for task in project.tasks)

    return PermissionContext(
        is_owner=project.created_by == actor.id,
        is_team_member=on_team or project.supervisor == actor.id,
        is_assigned=on_team or assigned_to_task,
    )


def task_context(actor: Actor, task: ProjectTask) -> PermissionContext:
    return PermissionContext(
        is_owner=task.created_by == actor.id,
        is_assigned=actor.id in task.assigned_to,
    )


def permissions_for(actor: Optional[Actor]) -> PermissionChecker:
    """Checker bound to `actor`; None denies everything."""
    return PermissionChecker(actor)
