"""
Relation paths that a repository read may resolve, per entity type.

Repositories map each member to eager-loading options; anything not listed is
left unloaded and raises if touched.
"""
from enum import Enum


class NoExpand(str, Enum):
    """Entities without outgoing references (permissions)."""


class RoleExpand(str, Enum):
    PERMISSIONS = "permissions"


class UserExpand(str, Enum):
    ROLES = "roles"
    ROLE_PERMISSIONS = "roles.permissions"
