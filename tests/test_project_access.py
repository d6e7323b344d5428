# tests/test_project_access.py

"""
Tests for deriving permission context from a loaded project.
"""

from conftest import task_payload
from core.permissions import can_perform
from models.actor import Actor
from services.project_access import permissions_for, project_context, task_context


async def test_project_context_flags(store, project, supervisor, team_member, vendor):
    project = await store.add_task(project.id, task_payload("Install", [vendor.id]), supervisor)
    outsider = Actor(id="U9", name="Olly Outsider", role="user")

    sup = project_context(supervisor, project)
    assert sup.is_owner is True
    assert sup.is_team_member is True
    assert sup.is_assigned is False

    member = project_context(team_member, project)
    assert member.is_owner is False
    assert member.is_team_member is True
    assert member.is_assigned is True

    assigned = project_context(vendor, project)
    assert assigned.is_team_member is False
    assert assigned.is_assigned is True

    nobody = project_context(outsider, project)
    assert not (nobody.is_owner or nobody.is_team_member or nobody.is_assigned)


async def test_vendor_sees_project_only_when_assigned(store, project, supervisor, vendor):
    assert can_perform("view", "projects", vendor.role, project_context(vendor, project)) is False

    project = await store.add_task(project.id, task_payload("Install", [vendor.id]), supervisor)

    assert can_perform("view", "projects", vendor.role, project_context(vendor, project)) is True


async def test_task_context_flags(store, project, supervisor, vendor, team_member):
    project = await store.add_task(project.id, task_payload("Install", [vendor.id]), supervisor)
    task = project.tasks[0]

    assert task_context(vendor, task).is_assigned is True
    assert task_context(vendor, task).is_owner is False
    assert task_context(supervisor, task).is_owner is True
    assert task_context(team_member, task).is_assigned is False


def test_permissions_for_binds_actor(vendor):
    checker = permissions_for(vendor)

    assert checker.can_view("bills", {"is_owner": True}) is True
    assert permissions_for(None).can_view("bills", {"is_owner": True}) is False
