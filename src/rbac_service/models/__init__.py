from .permission import Permission
from .role import Role
from .role_permission import RolePermission
from .user import User
from .user_role import UserRole

# This file serves as the central point for importing all models
# within the rbac_service.models package.

__all__ = ["Permission", "Role", "RolePermission", "User", "UserRole"]
