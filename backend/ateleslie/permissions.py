"""
Role / Permission Table
Static mapping of each role to the {resource, action} pairs it may perform.
"""

import enum
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping, Union


class Role(str, enum.Enum):
    """Caller roles. GUEST applies to unauthenticated requests."""
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


class Resource(str, enum.Enum):
    USER = "user"
    EVENT = "event"
    CONTACT = "contact"
    NEWSLETTER = "newsletter"


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"
    SUBSCRIBE = "subscribe"
    SEND = "send"


@dataclass(frozen=True)
class Permission:
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"


def _perms(*pairs) -> FrozenSet[Permission]:
    return frozenset(Permission(resource, action) for resource, action in pairs)


GUEST_PERMISSIONS = _perms(
    (Resource.EVENT, Action.READ),
    (Resource.NEWSLETTER, Action.SUBSCRIBE),
    (Resource.CONTACT, Action.CREATE),
)

USER_PERMISSIONS = GUEST_PERMISSIONS | _perms(
    (Resource.USER, Action.READ),
    (Resource.USER, Action.UPDATE),
)

ADMIN_PERMISSIONS = USER_PERMISSIONS | _perms(
    (Resource.USER, Action.MANAGE),
    (Resource.EVENT, Action.CREATE),
    (Resource.EVENT, Action.UPDATE),
    (Resource.EVENT, Action.DELETE),
    (Resource.CONTACT, Action.READ),
    (Resource.CONTACT, Action.MANAGE),
    (Resource.NEWSLETTER, Action.MANAGE),
    (Resource.NEWSLETTER, Action.SEND),
)

DEFAULT_ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = MappingProxyType({
    Role.GUEST: GUEST_PERMISSIONS,
    Role.USER: USER_PERMISSIONS,
    Role.ADMIN: ADMIN_PERMISSIONS,
})


class PermissionTable:
    """
    Read-only lookup of role -> permitted actions.
    Unknown roles have no permissions.
    """

    def __init__(self, role_permissions: Mapping[Role, Iterable[Permission]]):
        self._table = MappingProxyType({
            Role(role): frozenset(perms) for role, perms in role_permissions.items()
        })

    def permissions_for(self, role: Union[Role, str]) -> FrozenSet[Permission]:
        try:
            return self._table.get(Role(role), frozenset())
        except ValueError:
            return frozenset()

    def allows(self, role: Union[Role, str], resource: Resource, action: Action) -> bool:
        return Permission(resource, action) in self.permissions_for(role)

    def names_for(self, role: Union[Role, str]) -> List[str]:
        """Sorted ``resource:action`` strings, as stored on the user record."""
        return sorted(str(p) for p in self.permissions_for(role))


@lru_cache()
def get_permission_table() -> PermissionTable:
    """Process-wide permission table, built once. Also used as a FastAPI dependency."""
    return PermissionTable(DEFAULT_ROLE_PERMISSIONS)
