import pytest

from ateleslie.permissions import (
    Action, DEFAULT_ROLE_PERMISSIONS, Permission, PermissionTable, Resource, Role,
    get_permission_table,
)


@pytest.fixture
def table():
    return get_permission_table()


def test_guest_permissions(table):
    assert table.names_for(Role.GUEST) == ["contact:create", "event:read", "newsletter:subscribe"]


def test_user_extends_guest(table):
    assert table.permissions_for(Role.GUEST) < table.permissions_for(Role.USER)
    assert table.allows("user", Resource.USER, Action.UPDATE)
    assert not table.allows("user", Resource.EVENT, Action.CREATE)


def test_admin_extends_user(table):
    assert table.permissions_for(Role.USER) < table.permissions_for(Role.ADMIN)
    for resource, action in [
        (Resource.USER, Action.MANAGE),
        (Resource.EVENT, Action.DELETE),
        (Resource.CONTACT, Action.MANAGE),
        (Resource.NEWSLETTER, Action.SEND),
    ]:
        assert table.allows(Role.ADMIN, resource, action)


def test_unknown_role_has_no_permissions(table):
    assert table.permissions_for("superuser") == frozenset()
    assert not table.allows("superuser", Resource.EVENT, Action.READ)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_ROLE_PERMISSIONS[Role.GUEST] = frozenset()


def test_table_is_built_once():
    assert get_permission_table() is get_permission_table()


def test_custom_table():
    table = PermissionTable({Role.USER: [Permission(Resource.EVENT, Action.CREATE)]})
    assert table.allows(Role.USER, Resource.EVENT, Action.CREATE)
    assert table.permissions_for(Role.ADMIN) == frozenset()
