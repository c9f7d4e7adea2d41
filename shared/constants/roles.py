from enum import Enum


class Role(str, Enum):
    """Roles carried in the access token's "roles" claim."""

    USER = "user"
    # Calls from other backend services
    SERVICE = "service"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
