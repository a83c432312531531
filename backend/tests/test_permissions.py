"""Tests for the workspace role/permission matrix."""

from taskflow.services.permissions import (
    RESOURCE_ACTIONS,
    ROLES,
    default_permissions,
    has_permission,
    has_sufficient_role,
)


class TestDefaultPermissions:
    def test_every_role_covers_every_resource_action(self):
        for role in ROLES:
            matrix = default_permissions(role)
            assert set(matrix) == set(RESOURCE_ACTIONS)
            for resource, actions in RESOURCE_ACTIONS.items():
                assert set(matrix[resource]) == set(actions)

    def test_owner_has_everything(self):
        matrix = default_permissions("owner")
        assert all(all(actions.values()) for actions in matrix.values())

    def test_admin_cannot_manage_workspace(self):
        matrix = default_permissions("admin")
        assert matrix["workspace"]["manage"] is False
        assert matrix["users"]["manage"] is True

    def test_member_cannot_delete_tasks(self):
        matrix = default_permissions("member")
        assert matrix["tasks"] == {"create": True, "read": True, "update": True, "delete": False}
        assert matrix["users"]["invite"] is False

    def test_guest_is_read_only(self):
        matrix = default_permissions("guest")
        for resource in ("projects", "tasks", "calendar"):
            assert matrix[resource]["read"] is True
            assert matrix[resource]["create"] is False

    def test_unknown_role_falls_back_to_guest(self):
        assert default_permissions("intern") == default_permissions("guest")

    def test_returns_independent_copy(self):
        matrix = default_permissions("member")
        matrix["tasks"]["delete"] = True
        assert default_permissions("member")["tasks"]["delete"] is False


class TestHasPermission:
    def test_owner_always_allowed(self):
        assert has_permission("owner", {}, "workspace", "manage")
        assert has_permission("owner", {"tasks": {"delete": False}}, "tasks", "delete")

    def test_stored_matrix_overrides_role_defaults(self):
        stored = default_permissions("member")
        stored["tasks"]["delete"] = True
        assert has_permission("member", stored, "tasks", "delete")

    def test_empty_matrix_uses_role_defaults(self):
        assert has_permission("manager", {}, "users", "invite")
        assert not has_permission("manager", None, "users", "manage")

    def test_unknown_resource_or_action_denied(self):
        assert not has_permission("admin", None, "billing", "read")
        assert not has_permission("admin", None, "tasks", "archive")


def test_role_hierarchy():
    assert has_sufficient_role("admin", "manager")
    assert has_sufficient_role("member", "member")
    assert not has_sufficient_role("guest", "member")
    assert not has_sufficient_role("unknown", "guest")
