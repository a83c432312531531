"""Workspace role/permission matrix.

Permissions are stored per membership as ``{resource: {action: bool}}`` so
an owner or admin can tailor a member beyond the role defaults.
"""

from typing import Any, Mapping

ROLES = ("owner", "admin", "manager", "member", "guest")

# Role hierarchy for ranking checks (higher = more permissions)
ROLE_HIERARCHY = {"owner": 5, "admin": 4, "manager": 3, "member": 2, "guest": 1}

CRUD_ACTIONS = ("create", "read", "update", "delete")
RESOURCE_ACTIONS: dict[str, tuple[str, ...]] = {
    "projects": CRUD_ACTIONS,
    "tasks": CRUD_ACTIONS,
    "calendar": CRUD_ACTIONS,
    "timeline": ("read", "update"),
    "users": ("invite", "manage"),
    "workspace": ("manage",),
}

PermissionMatrix = dict[str, dict[str, bool]]


def _grant(**allowed: tuple[str, ...]) -> PermissionMatrix:
    return {
        resource: {action: action in allowed.get(resource, ()) for action in actions}
        for resource, actions in RESOURCE_ACTIONS.items()
    }


_DEFAULTS: dict[str, PermissionMatrix] = {
    "owner": _grant(**RESOURCE_ACTIONS),
    "admin": _grant(
        projects=CRUD_ACTIONS,
        tasks=CRUD_ACTIONS,
        calendar=CRUD_ACTIONS,
        timeline=("read", "update"),
        users=("invite", "manage"),
    ),
    "manager": _grant(
        projects=("create", "read", "update"),
        tasks=CRUD_ACTIONS,
        calendar=CRUD_ACTIONS,
        timeline=("read", "update"),
        users=("invite",),
    ),
    "member": _grant(
        projects=("read",),
        tasks=("create", "read", "update"),
        calendar=("create", "read", "update"),
        timeline=("read",),
    ),
    "guest": _grant(
        projects=("read",),
        tasks=("read",),
        calendar=("read",),
        timeline=("read",),
    ),
}


def default_permissions(role: str) -> PermissionMatrix:
    """Return a fresh copy of the default matrix for ``role``."""
    matrix = _DEFAULTS.get(role, _DEFAULTS["guest"])
    return {resource: dict(actions) for resource, actions in matrix.items()}


def has_permission(
    role: str,
    permissions: Mapping[str, Mapping[str, Any]] | None,
    resource: str,
    action: str,
) -> bool:
    """Check a member's permission; owners are always allowed.

    An empty stored matrix falls back to the role defaults.
    """
    if role == "owner":
        return True
    matrix = permissions or default_permissions(role)
    return bool(matrix.get(resource, {}).get(action, False))


def has_sufficient_role(user_role: str, required_role: str) -> bool:
    """Check if user_role meets or exceeds required_role."""
    return ROLE_HIERARCHY.get(user_role, 0) >= ROLE_HIERARCHY.get(required_role, 0)
