"""User roles and the operations each role is permitted to perform."""

from enum import Enum

from addressbook.services.errors import InvalidToken


class Permission(str, Enum):
    """Capabilities checked by the contact access layer."""

    READ_OWN = "read_own"
    WRITE_OWN = "write_own"
    LIST_ALL = "list_all"


class Role(str, Enum):
    """
    Closed set of user roles. Values are the strings stored in the users table
    and carried in the token role claim.
    """

    USER = "User"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Role for a stored or claimed value; unknown values fail closed with InvalidToken."""
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidToken(f"Unknown role: {value!r}") from e

    def allows(self, permission: Permission) -> bool:
        """True if this role grants the given permission."""
        return permission in ROLE_PERMISSIONS[self]


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.USER: frozenset({Permission.READ_OWN, Permission.WRITE_OWN}),
    Role.ADMIN: frozenset(
        {Permission.READ_OWN, Permission.WRITE_OWN, Permission.LIST_ALL}
    ),
}

DEFAULT_ROLE = Role.USER
