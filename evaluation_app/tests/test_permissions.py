from types import SimpleNamespace

import pytest

from accounts.models import Role
from evaluation_app import permissions
from evaluation_app.permissions import IsAdminOrHR, IsSelfOrAdminHR, ReadOnlyOrAdminHR


def request_as(role, method="GET", user_id="u-1"):
    user = SimpleNamespace(is_authenticated=role is not None, role=role, user_id=user_id)
    return SimpleNamespace(user=user, method=method)


def test_only_role_gates_in_use_are_exported():
    gates = {
        name for name, obj in vars(permissions).items()
        if isinstance(obj, type) and issubclass(obj, permissions.BasePermission)
        and obj is not permissions.BasePermission
    }
    assert gates == {"IsAdminOrHR", "ReadOnlyOrAdminHR", "IsSelfOrAdminHR"}


@pytest.mark.parametrize("role, allowed", [
    (Role.ADMIN, True), (Role.HR, True), ("hr", True),
    (Role.MD, False), (Role.STAFF, False), (None, False),
])
def test_admin_or_hr(role, allowed):
    assert IsAdminOrHR().has_permission(request_as(role), None) is allowed


class TestReadOnlyOrAdminHR:
    def test_reads_open_to_any_signed_in_user(self):
        assert ReadOnlyOrAdminHR().has_permission(request_as(Role.STAFF), None)
        assert not ReadOnlyOrAdminHR().has_permission(request_as(None), None)

    def test_writes_need_admin_or_hr(self):
        assert not ReadOnlyOrAdminHR().has_permission(request_as(Role.MANAGER, "POST"), None)
        assert ReadOnlyOrAdminHR().has_permission(request_as(Role.HR, "DELETE"), None)


def test_self_or_admin_hr_object_access():
    gate = IsSelfOrAdminHR()
    target = SimpleNamespace(user_id="u-1")
    assert gate.has_object_permission(request_as(Role.STAFF, user_id="u-1"), None, target)
    assert not gate.has_object_permission(request_as(Role.STAFF, user_id="u-2"), None, target)
    assert gate.has_object_permission(request_as(Role.ADMIN, user_id="u-2"), None, target)
