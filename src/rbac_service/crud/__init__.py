from .base_crud import CRUDBase, Page
from .expand import NoExpand, RoleExpand, UserExpand
from .membership_crud import MembershipCRUD
from .permission_crud import PermissionCRUD
from .role_crud import RoleCRUD, role_permissions
from .user_crud import UserCRUD, user_roles

__all__ = [
    "CRUDBase",
    "Page",
    "NoExpand",
    "RoleExpand",
    "UserExpand",
    "MembershipCRUD",
    "PermissionCRUD",
    "RoleCRUD",
    "UserCRUD",
    "role_permissions",
    "user_roles",
]
