# core/permissions.py

"""
Role-based permission evaluation.

The matrix below maps every (resource, action, role) triple to an access
level. Context-gated levels (team / own / assigned / own-profile) only grant
access when the caller asserts the matching relationship flag; the engine
never looks identities up itself.

Usage:
    from core.permissions import can_perform, PermissionContext

    ctx = PermissionContext(is_team_member=actor.id in project.team)
    if not can_perform("view", "projects", actor.role, ctx):
        ...
"""

from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.logging_config import logger
from models.enums import AccessLevel, Action, Resource, Role


# ============================================
# CENTRALIZED RESOURCE → ACTION → ROLE MATRIX
# ============================================
PERMISSIONS_MATRIX = {
    # =====================================================
    # USERS
    # =====================================================
    "users": {
        "view": {"admin": "all", "supervisor": "team", "finance": "no", "vendor": "no", "user": "no"},
        "create": {"admin": "yes", "supervisor": "no", "finance": "no", "vendor": "no", "user": "self-register"},
        "edit": {"admin": "yes", "supervisor": "no", "finance": "no", "vendor": "no", "user": "own-profile"},
        "delete": {"admin": "yes", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # VENDORS
    # =====================================================
    "vendors": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "own", "user": "no"},
        "create": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "own", "user": "no"},
        "delete": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # PROJECTS
    # =====================================================
    "projects": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "assigned", "user": "assigned"},
        "create": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "delete": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # VENDOR DOCUMENTS
    # =====================================================
    "vendorDocuments": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "own", "user": "no"},
        "create": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "delete": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "own", "user": "no"},
        "upload": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "own", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # TICKETS
    # =====================================================
    "tickets": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "assigned", "user": "assigned"},
        "create": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "delete": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # TICKET DOCUMENTS
    # =====================================================
    "ticketDocuments": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "assigned", "user": "assigned"},
        "create": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "delete": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "assigned", "user": "assigned"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # BILLS
    # =====================================================
    "bills": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "own", "user": "no"},
        "create": {"admin": "yes", "supervisor": "no", "finance": "no", "vendor": "own", "user": "no"},
        "edit": {"admin": "yes", "supervisor": "no", "finance": "yes", "vendor": "own", "user": "no"},
        "delete": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "yes", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },

    # =====================================================
    # AD-HOC PAYMENTS
    # =====================================================
    "adHocPayments": {
        "view": {"admin": "yes", "supervisor": "yes", "finance": "yes", "vendor": "no", "user": "no"},
        "create": {"admin": "yes", "supervisor": "yes", "finance": "no", "vendor": "no", "user": "no"},
        "edit": {"admin": "yes", "supervisor": "no", "finance": "yes", "vendor": "no", "user": "no"},
        "delete": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "upload": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "approve": {"admin": "yes", "supervisor": "no", "finance": "yes", "vendor": "no", "user": "no"},
        "pay": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
        "close": {"admin": "no", "supervisor": "no", "finance": "no", "vendor": "no", "user": "no"},
    },
}


PolicyKey = Tuple[Resource, Action, Role]


def _build_policy(matrix: Mapping[str, Mapping[str, Mapping[str, str]]]) -> Mapping[PolicyKey, AccessLevel]:
    """
    Flatten the matrix into an immutable (resource, action, role) lookup.
    Raises RuntimeError if any cell of the full cartesian product is missing
    or holds an unknown level, so a policy gap fails at import time.
    """
    policy = {}
    missing = []

    for resource in Resource:
        for action in Action:
            for role in Role:
                raw = matrix.get(resource.value, {}).get(action.value, {}).get(role.value)
                if raw is None:
                    missing.append(f"{resource.value}.{action.value}.{role.value}")
                    continue
                try:
                    policy[(resource, action, role)] = AccessLevel(raw)
                except ValueError:
                    raise RuntimeError(
                        f"Unknown access level '{raw}' for {resource.value}.{action.value}.{role.value}"
                    )

    if missing:
        raise RuntimeError(f"Permissions matrix is incomplete, missing: {', '.join(missing)}")

    return MappingProxyType(policy)


POLICY: Mapping[PolicyKey, AccessLevel] = _build_policy(PERMISSIONS_MATRIX)


# -----------------------------------------------------
# Caller-supplied relationship context
# -----------------------------------------------------
class PermissionContext(BaseModel):
    """Relationship flags computed by the caller. Absent means False."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    is_owner: bool = False
    is_team_member: bool = False
    is_assigned: bool = False
    is_own_profile: bool = False


ContextLike = Union[PermissionContext, Mapping[str, Any], None]

EMPTY_CONTEXT = PermissionContext()

UNCONDITIONAL_LEVELS = frozenset({AccessLevel.all, AccessLevel.yes, AccessLevel.self_register})

CONTEXT_FLAGS = {
    AccessLevel.team: "is_team_member",
    AccessLevel.own: "is_owner",
    AccessLevel.assigned: "is_assigned",
    AccessLevel.own_profile: "is_own_profile",
}


def _coerce_context(context: ContextLike) -> PermissionContext:
    if context is None:
        return EMPTY_CONTEXT
    if isinstance(context, PermissionContext):
        return context
    return PermissionContext.model_validate(dict(context))


def access_level(action: Union[Action, str], resource: Union[Resource, str], role: Union[Role, str]) -> Optional[AccessLevel]:
    """Raw policy cell, or None when the combination is not modelled."""
    return POLICY.get((Resource(resource), Action(action), Role(role)))


def can_perform(
    action: Union[Action, str],
    resource: Union[Resource, str],
    role: Union[Role, str],
    context: ContextLike = None,
) -> bool:
    """
    Return True if `role` may perform `action` on `resource`.

    Args:
        action: One of the Action values, e.g. "edit".
        resource: One of the Resource values, e.g. "projects".
        role: One of the Role values, e.g. "supervisor".
        context: Optional relationship flags (is_owner, is_team_member,
            is_assigned, is_own_profile). camelCase keys are accepted too.

    Unknown enum values raise ValueError. A combination missing from the
    policy denies access.
    """
    level = access_level(action, resource, role)

    if level is None:
        logger.warning(f"No policy for {resource}.{action}.{role}; denying")
        return False

    if level in UNCONDITIONAL_LEVELS:
        return True

    flag = CONTEXT_FLAGS.get(level)
    if flag is None:
        # AccessLevel.no
        return False

    return bool(getattr(_coerce_context(context), flag))


can = can_perform


def can_view(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.view, resource, role, context)


def can_create(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.create, resource, role, context)


def can_edit(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.edit, resource, role, context)


def can_delete(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.delete, resource, role, context)


def can_upload(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.upload, resource, role, context)


def can_approve(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.approve, resource, role, context)


def can_pay(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.pay, resource, role, context)


def can_close(resource, role, context: ContextLike = None) -> bool:
    return can_perform(Action.close, resource, role, context)


# -----------------------------------------------------
# Per-actor checker
# -----------------------------------------------------
class PermissionChecker:
    """
    Binds an actor's role once so call sites only pass resource + context.
    A missing actor (not signed in) is denied everything.
    """

    def __init__(self, actor):
        self.actor = actor

    def can(self, action, resource, context: ContextLike = None) -> bool:
        if self.actor is None:
            return False
        return can_perform(action, resource, self.actor.role, context)

    def can_view(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.view, resource, context)

    def can_create(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.create, resource, context)

    def can_edit(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.edit, resource, context)

    def can_delete(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.delete, resource, context)

    def can_upload(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.upload, resource, context)

    def can_approve(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.approve, resource, context)

    def can_pay(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.pay, resource, context)

    def can_close(self, resource, context: ContextLike = None) -> bool:
        return self.can(Action.close, resource, context)
