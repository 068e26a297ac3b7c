"""
Roles, Action Classes and the Policy Table

Every protected operation is statically assigned one ActionClass. Whether
a role may perform it is answered by ALLOWED_ROLES and nothing else.

There is deliberately no numeric ranking of roles: owner and admin are
each listed explicitly wherever they are allowed, so adding or reordering
a role cannot silently widen access.
"""
import enum
from typing import Optional


class Role(str, enum.Enum):
    """Membership roles, highest privilege first."""
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        """Map a stored role string to a Role; unknown values map to None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class ActionClass(str, enum.Enum):
    """Policy tier of an operation."""
    READ = "read"
    WRITE = "write"
    ADMIN_WRITE = "admin-write"


class Decision(str, enum.Enum):
    """Outcome of an authorization check. Truthy only for ALLOW."""
    ALLOW = "allow"
    DENY = "deny"

    def __bool__(self) -> bool:
        return self is Decision.ALLOW

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


ALLOWED_ROLES: dict[ActionClass, frozenset[Role]] = {
    ActionClass.READ: frozenset({Role.OWNER, Role.ADMIN, Role.EDITOR, Role.VIEWER}),
    ActionClass.WRITE: frozenset({Role.OWNER, Role.ADMIN, Role.EDITOR}),
    ActionClass.ADMIN_WRITE: frozenset({Role.OWNER, Role.ADMIN}),
}

# Only an owner may create, change or remove another owner
OWNER_GRANTING_ROLES: frozenset[Role] = frozenset({Role.OWNER})


def role_allows(role: Optional[Role], action_class: ActionClass) -> bool:
    """Set-membership test against ALLOWED_ROLES. None never allows."""
    if role is None:
        return False
    return role in ALLOWED_ROLES[ActionClass(action_class)]
