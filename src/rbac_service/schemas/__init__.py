from .common_schemas import (
    ErrorResponse,
    ExistsResponse,
    MembershipCheckResponse,
    PageResponse,
)
from .permission_schemas import (
    PermissionBulkCreate,
    PermissionCreate,
    PermissionResponse,
    PermissionStats,
    PermissionUpdate,
)
from .role_schemas import RoleCreate, RoleResponse, RoleStats, RoleUpdate
from .user_schemas import UserCreate, UserListFilters, UserResponse, UserStats, UserUpdate

__all__ = [
    "ErrorResponse",
    "ExistsResponse",
    "MembershipCheckResponse",
    "PageResponse",
    "PermissionBulkCreate",
    "PermissionCreate",
    "PermissionResponse",
    "PermissionStats",
    "PermissionUpdate",
    "RoleCreate",
    "RoleResponse",
    "RoleStats",
    "RoleUpdate",
    "UserCreate",
    "UserListFilters",
    "UserResponse",
    "UserStats",
    "UserUpdate",
]
