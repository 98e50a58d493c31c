"""User roles and their ordering."""

from enum import Enum


class UserRole(str, Enum):
    """User roles for RBAC."""

    ADMIN = "admin"
    STAFF = "staff"
    GUEST = "guest"


# Role hierarchy: admin > staff > guest
ROLE_HIERARCHY = {
    UserRole.ADMIN: 3,
    UserRole.STAFF: 2,
    UserRole.GUEST: 1,
}
